import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from prompt_tool_app import config, utils


def _str_field(data, key, default=""):
    value = data.get(key)
    if value is None or value == "":
        return default
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string: {value!r}")
    return value


def _str_list(data, key):
    value = data.get(key)
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"{key} must be a list of strings: {value!r}")
    return tuple(value)


def _str_mapping(data, key):
    value = data.get(key)
    if value is None:
        return MappingProxyType({})
    if not isinstance(value, dict) or not all(isinstance(item, str) for item in value.values()):
        raise ValueError(f"{key} must be an object of strings: {value!r}")
    return MappingProxyType(dict(value))


@dataclass(frozen=True)
class ModelRecord:
    id: str
    name: str = ""
    latest: str = ""
    engines: Tuple[str, ...] = ()
    params: Mapping[str, str] = field(default_factory=dict)
    template: str = ""
    lexicon: Mapping[str, str] = field(default_factory=dict)
    guideline: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data):
        model_id = data["id"]
        if not isinstance(model_id, (str, int)) or isinstance(model_id, bool) or model_id == "":
            raise ValueError(f"invalid model id: {model_id!r}")
        model_id = str(model_id)
        return cls(
            id=model_id,
            name=_str_field(data, "name", model_id),
            latest=_str_field(data, "latest"),
            engines=_str_list(data, "engines"),
            params=_str_mapping(data, "params"),
            template=_str_field(data, "template"),
            lexicon=_str_mapping(data, "lexicon"),
            guideline=_str_list(data, "guideline"),
        )


@dataclass(frozen=True)
class GuidelineDocument:
    """Resolved guideline configuration; replaced as a whole, never edited."""

    version: str
    updated_at: str
    models: Tuple[ModelRecord, ...]
    lexicon: Mapping[str, str]
    source: str

    @classmethod
    def from_dict(cls, data, source):
        if source not in config.SOURCE_TAGS:
            raise ValueError(f"unknown source tag: {source!r}")
        entries = data.get("models")
        if entries is None:
            entries = []
        if not isinstance(entries, list):
            raise ValueError(f"models must be a list: {entries!r}")
        models, seen = [], set()
        for entry in entries:
            if not isinstance(entry, dict):
                raise ValueError(f"model entry must be an object: {entry!r}")
            model = ModelRecord.from_dict(entry)
            if model.id in seen:
                raise ValueError(f"duplicate model id: {model.id!r}")
            seen.add(model.id)
            models.append(model)
        return cls(
            version=_str_field(data, "version", "0.0.0"),
            updated_at=_str_field(data, "updatedAt"),
            models=tuple(models),
            lexicon=_str_mapping(data, "lexicon"),
            source=source,
        )

    def find_model(self, model_id) -> Optional[ModelRecord]:
        for model in self.models:
            if model.id == model_id:
                return model
        return None


@dataclass
class BuildOptions:
    aspect: str = ""
    seed: str = ""
    negative: str = ""
    stylize: object = config.DEFAULT_STYLIZE


@dataclass(frozen=True)
class BuildResult:
    full: str
    params: str


def merge_lexicons(global_lexicon, model_lexicon) -> Dict[str, str]:
    """전역 사전을 기본으로 하고 모델 사전이 같은 키를 덮어씁니다."""
    merged = dict(global_lexicon or {})
    merged.update(model_lexicon or {})
    return merged


class PromptBuilder:
    """한 모델의 템플릿/파라미터 키/사전으로 프롬프트를 만드는 빌더.

    호출 사이에 상태를 갖지 않으며 ModelRecord를 수정하지 않습니다.
    """

    def __init__(self, model: ModelRecord, global_lexicon=None):
        self.model = model
        self.lexicon = MappingProxyType(merge_lexicons(global_lexicon, model.lexicon))

    def _token(self, role, value):
        key = self.model.params.get(f"{role}Key", "")
        return " ".join(part for part in (key, str(value)) if part)

    def parameter_tokens(self, options: BuildOptions):
        aspect = str(options.aspect or "").strip()
        seed = str(options.seed or "").strip()
        negative = str(options.negative or "").strip()
        return {
            "aspect": self._token("aspect", aspect) if aspect else "",
            "stylize": self._token("stylize", utils.coerce_stylize(options.stylize)),
            "seed": self._token("seed", seed) if seed else "",
            "negative": self._token("negative", utils.translate(negative, self.lexicon)) if negative else "",
        }

    def __call__(self, text, engine, options: Optional[BuildOptions] = None) -> BuildResult:
        options = options or BuildOptions()
        values = {}
        for slot, value in utils.extract_slots(text or "").items():
            values[slot] = utils.translate(value, self.lexicon) if isinstance(value, str) else value
        values["engine"] = engine or ""
        values.update(self.parameter_tokens(options))

        full = utils.render_template(self.model.template, values)
        return BuildResult(full=full, params=utils.extract_parameter_line(full))


class BuilderRegistry:
    """모델 ID별 빌더 목록. 설치할 때마다 전부 새로 만듭니다."""

    def __init__(self):
        self._builders: Dict[str, PromptBuilder] = {}

    def install(self, document: GuidelineDocument):
        self._builders = {
            model.id: PromptBuilder(model, document.lexicon) for model in document.models
        }

    def get(self, model_id) -> Optional[PromptBuilder]:
        return self._builders.get(model_id)

    def ids(self) -> List[str]:
        return list(self._builders)

    def __contains__(self, model_id):
        return model_id in self._builders

    def __len__(self):
        return len(self._builders)


class GuidelineStore:
    """Holds the published document and its registry, swapped together under a lock."""

    def __init__(self):
        self._lock = threading.Lock()
        self._document: Optional[GuidelineDocument] = None
        self._registry = BuilderRegistry()

    def publish(self, document: GuidelineDocument):
        registry = BuilderRegistry()
        registry.install(document)
        with self._lock:
            self._document, self._registry = document, registry

    @property
    def document(self) -> Optional[GuidelineDocument]:
        with self._lock:
            return self._document

    @property
    def registry(self) -> BuilderRegistry:
        with self._lock:
            return self._registry

    def models(self):
        document = self.document
        return document.models if document else ()

    def find_model(self, model_id):
        document = self.document
        return document.find_model(model_id) if document else None

    def build(self, model_id, engine, text, options=None) -> Optional[BuildResult]:
        """빌더가 없는 모델이면 None을 돌려줍니다."""
        builder = self.registry.get(model_id)
        if builder is None:
            return None
        return builder(text, engine, options)
