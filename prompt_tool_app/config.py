"""
Application Configuration and Default Values
"""
import os

PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))

# Bundled guideline document used when no remote URL is configured
BUNDLED_GUIDELINES = os.path.join(PACKAGE_DIR, "assets", "models.json")

# Durable key/value storage lives in a single JSON file
SETTINGS_DIR = os.environ.get("PROMPT_TOOL_HOME") or os.path.join(os.path.expanduser("~"), ".prompt_tool")
SETTINGS_PATH = os.path.join(SETTINGS_DIR, "settings.json")

STORAGE_KEYS = {
    "SOURCE_URL": "guidelines.sourceUrl",
    "AUTO_MINUTES": "guidelines.autoMinutes",
    "CACHED_JSON": "guidelines.cachedJson",
}

DEFAULT_AUTO_MINUTES = 60
MIN_AUTO_MINUTES = 5
FETCH_TIMEOUT = 10

DEFAULT_STYLIZE = 50
DEFAULT_DURATION = 4

SOURCE_TAGS = ("remote", "local", "cache")

# Fallback phrase for every slot the parser could not fill
SLOT_DEFAULTS = {
    "subject": "product beauty shot",
    "environment": "studio setting with clean background",
    "lighting": "soft diffuse lighting",
    "materials": "glass, metal, plastic",
    "mood": "elegant and fresh",
    "composition": "centered hero close-up",
    "details": "crisp label, accurate color, subtle reflections",
}

# Keyword heuristics, checked in order against the full segment list.
# A segment may satisfy more than one rule.
SLOT_RULES = [
    ("lighting", ["조명", "빛", "광", "햇살"]),
    ("materials", ["유리", "메탈", "금속", "플라스틱", "실크", "거울"]),
    ("mood", ["분위기", "무드", "차분", "고급", "상쾌", "따뜻"]),
    ("composition", ["구도", "상단", "하단", "3분할", "클로즈업", "원근"]),
]

PLACEHOLDERS = (
    "subject", "environment", "lighting", "materials", "mood", "composition",
    "details", "duration", "engine", "aspect", "stylize", "seed", "negative",
)

PARAMETERS_MARKER = "Parameters:"

UI_TEXT = {
    "title": "프롬프트 변환 도구 (Guideline-Driven)",
    "no_builder": "No builder available for the selected model.",
    "guideline_placeholder": "모델을 선택하면 공식 가이드 요약이 여기에 표시됩니다.",
    "model_label": "모델: {}",
    "version_label": "버전: {}",
    "updated_label": "업데이트: {}",
    "status_label": "가이드라인 {version} ({source})",
}
