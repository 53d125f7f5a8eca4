import json

import pytest

from prompt_tool_app.core import GuidelineStore
from prompt_tool_app.updater import SettingsStorage


@pytest.fixture
def guideline_data():
    return {
        "version": "2.0.0",
        "updatedAt": "2026-10-01",
        "lexicon": {"빨간": "red", "신발": "shoe", "나무": "wood"},
        "models": [
            {
                "id": "mj",
                "name": "Midjourney",
                "latest": "v7",
                "engines": ["v7", "v6.1"],
                "params": {"aspectKey": "--ar", "stylizeKey": "--s", "seedKey": "--seed", "negativeKey": "--no"},
                "template": "{subject} in {environment}, {lighting}. Parameters: {aspect} {stylize}",
                "lexicon": {"신발": "sneaker"},
                "guideline": ["Subject first."],
            },
            {
                "id": "video",
                "name": "Video",
                "latest": "gen3",
                "engines": ["gen3a"],
                "params": {"aspectKey": "--ratio", "stylizeKey": "--motion"},
                "template": "[{engine}] {duration}s {subject}\nParameters: {aspect} {stylize} {seed} {negative}",
                "lexicon": {},
                "guideline": [],
            },
        ],
    }


@pytest.fixture
def guideline_json(guideline_data):
    return json.dumps(guideline_data, ensure_ascii=False)


@pytest.fixture
def storage(tmp_path):
    return SettingsStorage(str(tmp_path / "settings.json"))


@pytest.fixture
def store():
    return GuidelineStore()
