import math
import re

from prompt_tool_app import config

_SEGMENT_SPLIT = re.compile(r"[.,\n]")
_PLACEHOLDER_PATTERN = re.compile(r"\{(" + "|".join(config.PLACEHOLDERS) + r")\}")
_PARAMETERS_LINE = re.compile(re.escape(config.PARAMETERS_MARKER) + r"(.*)$", re.MULTILINE)


def translate(text, lexicon):
    """사전의 용어를 긴 것부터 차례로 치환합니다.

    앞서 치환된 번역어 안에 다른 키가 포함되어 있으면 그 부분도 다시 치환됩니다.
    """
    output = text
    for key in sorted(lexicon or {}, key=len, reverse=True):
        value = lexicon[key]
        if not key or not value:
            continue
        output = re.sub(re.escape(key), lambda _m, v=value: v, output)
    return output


def split_segments(text):
    """입력 문장을 마침표/쉼표/줄바꿈 기준으로 나눕니다."""
    return [part.strip() for part in _SEGMENT_SPLIT.split(text.strip()) if part.strip()]


def _find_segment(parts, keywords):
    for part in parts:
        if any(keyword in part for keyword in keywords):
            return part
    return None


def extract_slots(text):
    """자유 서술을 subject/environment/... 슬롯으로 나눕니다."""
    parts = split_segments(text)
    slots = {
        "subject": parts[0] if parts else config.SLOT_DEFAULTS["subject"],
        "environment": parts[1] if len(parts) > 1 else config.SLOT_DEFAULTS["environment"],
    }
    for slot, keywords in config.SLOT_RULES:
        slots[slot] = _find_segment(parts, keywords) or config.SLOT_DEFAULTS[slot]
    slots["details"] = ", ".join(parts[2:]) or config.SLOT_DEFAULTS["details"]
    slots["duration"] = config.DEFAULT_DURATION
    return slots


def render_template(template, values):
    """Substitutes known placeholders in one pass; unknown ones stay untouched."""
    def _replace(match):
        value = values.get(match.group(1))
        return match.group(0) if value is None else str(value)

    return _PLACEHOLDER_PATTERN.sub(_replace, template).strip()


def extract_parameter_line(text):
    match = _PARAMETERS_LINE.search(text)
    return match.group(1).strip() if match else ""


def coerce_stylize(value):
    """숫자가 아니거나 비어 있으면 기본값(50)을 사용합니다."""
    if value is None or isinstance(value, bool):
        return config.DEFAULT_STYLIZE
    try:
        number = float(value)
    except (TypeError, ValueError):
        return config.DEFAULT_STYLIZE
    if not math.isfinite(number):
        return config.DEFAULT_STYLIZE
    return int(number) if number.is_integer() else number


def normalize_minutes(value):
    """자동 업데이트 주기를 분 단위로 정규화합니다 (최소 5분, 잘못된 값은 60분)."""
    try:
        minutes = float(value)
    except (TypeError, ValueError):
        minutes = 0
    if not minutes or not math.isfinite(minutes):
        minutes = config.DEFAULT_AUTO_MINUTES
    minutes = max(config.MIN_AUTO_MINUTES, minutes)
    return int(minutes) if float(minutes).is_integer() else minutes


def compose_source_text(custom_guideline, source_text):
    """사용자 지정 가이드가 있으면 입력 앞에 붙입니다."""
    custom_guideline = (custom_guideline or "").strip()
    source_text = (source_text or "").strip()
    return f"{custom_guideline}\n{source_text}" if custom_guideline else source_text


def format_guideline_summary(model):
    """모델 가이드 요약 텍스트를 만듭니다."""
    if model is None:
        return config.UI_TEXT["guideline_placeholder"]
    params = ", ".join(f"{key}:{value}" for key, value in model.params.items())
    rules = "\n  - ".join(model.guideline)
    return (
        f"• Engines: {', '.join(model.engines)}\n"
        f"• Parameters: {params}\n"
        f"• Rules:\n  - {rules}"
    )
