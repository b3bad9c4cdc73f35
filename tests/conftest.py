import sys
from pathlib import Path

import pytest

# Ensure the project root is on sys.path for direct pytest runs
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from campus_nav.models import Poi  # noqa: E402


@pytest.fixture
def start_poi():
    return Poi.parse_obj(
        {
            "title": "Kårallen",
            "buildingName": "Kårallen",
            "point": {"coordinates": [15.5769, 58.3984]},
            "z": 1,
            "poiId": 1001,
        }
    )


@pytest.fixture
def end_poi():
    return Poi.parse_obj(
        {
            "title": "Zenit",
            "buildingName": "Zenit",
            "point": {"coordinates": [15.5721, 58.3977]},
            "z": 2,
            "poiId": None,
        }
    )


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    for name in (
        "OPENAI_API_KEY",
        "OPENAI_BASE_URL",
        "OPENAI_CHAT_MODEL",
        "OPENAI_TTS_MODEL",
        "OPENAI_TTS_VOICE",
        "MAZEMAP_CAMPUS_ID",
        "MAZEMAP_LANG",
        "REQUEST_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)
