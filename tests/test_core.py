import pytest

from prompt_tool_app.core import (
    BuilderRegistry,
    BuildOptions,
    GuidelineDocument,
    ModelRecord,
    PromptBuilder,
    merge_lexicons,
)


@pytest.fixture
def document(guideline_data):
    return GuidelineDocument.from_dict(guideline_data, "local")


def make_model(**overrides):
    data = {
        "id": "mj",
        "params": {"aspectKey": "--ar", "stylizeKey": "--s", "seedKey": "--seed", "negativeKey": "--no"},
        "template": "{subject} in {environment}, {lighting}. Parameters: {aspect} {stylize}",
    }
    data.update(overrides)
    return ModelRecord.from_dict(data)


def test_document_from_dict(document):
    assert document.version == "2.0.0"
    assert document.updated_at == "2026-10-01"
    assert document.source == "local"
    assert [model.id for model in document.models] == ["mj", "video"]
    assert document.find_model("video").engines == ("gen3a",)
    assert document.find_model("missing") is None


def test_document_defaults_for_sparse_payload():
    document = GuidelineDocument.from_dict({}, "cache")
    assert document.version == "0.0.0"
    assert document.models == ()
    assert dict(document.lexicon) == {}


def test_document_rejects_duplicate_ids_and_unknown_source(guideline_data):
    guideline_data["models"].append({"id": "mj"})
    with pytest.raises(ValueError):
        GuidelineDocument.from_dict(guideline_data, "remote")
    with pytest.raises(ValueError):
        GuidelineDocument.from_dict({}, "disk")


def test_merge_lexicons_model_overrides_global():
    merged = merge_lexicons({"a": "1", "b": "2"}, {"b": "3"})
    assert merged == {"a": "1", "b": "3"}


def test_end_to_end_example():
    builder = PromptBuilder(make_model())
    result = builder("a red shoe, on a wooden table", "v7", BuildOptions(aspect="16:9", stylize=80))
    assert result.full == "a red shoe in on a wooden table, soft diffuse lighting. Parameters: --ar 16:9 --s 80"
    assert result.full.endswith("Parameters: --ar 16:9 --s 80")
    assert result.params == "--ar 16:9 --s 80"


def test_empty_options_only_emit_stylize():
    model = make_model(template="{subject}\nParameters: {aspect} {stylize} {seed} {negative}")
    result = PromptBuilder(model)("꽃병", "v7", BuildOptions())
    assert "--ar" not in result.full
    assert "--seed" not in result.full
    assert "--no" not in result.full
    assert result.params == "--s 50"


def test_invalid_stylize_falls_back_to_default():
    model = make_model(template="Parameters: {stylize}")
    assert PromptBuilder(model)("x", "v7", BuildOptions(stylize="abc")).params == "--s 50"


def test_all_options_and_negative_is_translated(document):
    model = make_model(template="{subject}\nParameters: {aspect} {stylize} {seed} {negative}")
    builder = PromptBuilder(model, {"흐림": "blur", "빨간": "red"})
    result = builder("빨간 컵", "v7", BuildOptions(aspect="1:1", seed="42", negative="흐림", stylize=250))
    assert result.full == "red 컵\nParameters: --ar 1:1 --s 250 --seed 42 --no blur"
    assert result.params == "--ar 1:1 --s 250 --seed 42 --no blur"


def test_slots_translated_with_model_override(document):
    builder = PromptBuilder(document.find_model("mj"), document.lexicon)
    result = builder("빨간 신발, 나무 테이블", "v7", BuildOptions())
    assert result.full.startswith("red sneaker in wood 테이블")


def test_duration_engine_and_missing_param_keys(document):
    builder = PromptBuilder(document.find_model("video"), document.lexicon)
    result = builder("신발", "gen3a", BuildOptions(seed="7", negative="나무"))
    assert result.full == "[gen3a] 4s shoe\nParameters:  --motion 50 7 wood"
    assert result.params == "--motion 50 7 wood"


def test_template_without_parameters_marker():
    result = PromptBuilder(make_model(template="{subject} {mystery}"))("컵", "v7", BuildOptions())
    assert result.full == "컵 {mystery}"
    assert result.params == ""


def test_builder_is_stateless_and_does_not_mutate_model():
    model = make_model(lexicon={"컵": "cup"})
    builder = PromptBuilder(model, {"컵": "mug"})
    first = builder("컵, 책상", "v7", BuildOptions(aspect="4:5"))
    builder("다른 입력", "v6", BuildOptions(seed="1"))
    assert builder("컵, 책상", "v7", BuildOptions(aspect="4:5")) == first
    assert dict(model.lexicon) == {"컵": "cup"}
    assert first.full.startswith("cup in 책상")


def test_registry_rebuild_discards_previous_ids(guideline_data, document):
    registry = BuilderRegistry()
    registry.install(document)
    assert registry.get("mj") is not None
    assert registry.get("video") is not None
    assert registry.get("unknown") is None

    guideline_data["models"] = guideline_data["models"][1:]
    registry.install(GuidelineDocument.from_dict(guideline_data, "remote"))
    assert registry.get("mj") is None
    assert "video" in registry
    assert registry.ids() == ["video"]


def test_store_publish_and_build(store, document):
    assert store.build("mj", "v7", "컵", BuildOptions()) is None
    store.publish(document)
    assert store.document is document
    assert store.find_model("video").name == "Video"
    assert store.build("mj", "v7", "a red shoe, on a wooden table", BuildOptions(aspect="16:9", stylize=80)).params == "--ar 16:9 --s 80"
    assert store.build("nope", "v7", "컵") is None


def test_store_publish_replaces_registry_wholesale(store, guideline_data, document):
    store.publish(document)
    old_registry = store.registry
    guideline_data["models"] = []
    store.publish(GuidelineDocument.from_dict(guideline_data, "cache"))
    assert store.registry is not old_registry
    assert len(store.registry) == 0
    assert len(old_registry) == 2
    assert store.models() == ()


@pytest.mark.parametrize("entry", [
    {"id": "x", "engines": 3},
    {"id": "x", "engines": "v7"},
    {"id": "x", "guideline": [1]},
    {"id": "x", "params": {"aspectKey": None}},
    {"id": "x", "template": ["{subject}"]},
    {"id": "x", "lexicon": {"컵": 1}},
    {"id": "x", "name": 3},
    {"id": ""},
    {"id": None},
])
def test_model_record_rejects_wrong_types(entry):
    with pytest.raises(ValueError):
        ModelRecord.from_dict(entry)


def test_document_rejects_non_list_models_and_bad_lexicon():
    with pytest.raises(ValueError):
        GuidelineDocument.from_dict({"models": 5}, "remote")
    with pytest.raises(ValueError):
        GuidelineDocument.from_dict({"lexicon": {"컵": 1}}, "remote")


def test_model_record_accepts_numeric_id_and_missing_fields():
    model = ModelRecord.from_dict({"id": 7})
    assert model.id == "7"
    assert model.name == "7"
    assert model.engines == ()
    assert dict(model.params) == {}
