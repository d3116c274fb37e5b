"""
Pytest configuration for the itinerary pipeline tests.
"""

import copy
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

# Register asyncio marker
pytest.importorskip("pytest_asyncio")

from itinerary_pipeline.config import EngineConfig  # noqa: E402
from itinerary_pipeline.data.session_store import SessionStore  # noqa: E402
from itinerary_pipeline.generation.cache import ResultCache  # noqa: E402
from itinerary_pipeline.generation.engine import GuaranteedJsonEngine  # noqa: E402
from itinerary_pipeline.generation.metrics import EngineMetrics  # noqa: E402
from itinerary_pipeline.utils import LogLevel, setup_logging  # noqa: E402

SAMPLE_ACTIVITIES = [
    {
        "image": "/images/activities/burnham.jpg",
        "title": "Burnham Park",
        "time": "8:00-10:00AM",
        "desc": "Central park with a lake and boat rides.",
        "tags": ["Nature & Scenery", "Outdoor-Friendly"],
        "relevanceScore": 1.0,
    },
    {
        "image": "/images/activities/bencab.jpg",
        "title": "Bencab Museum",
        "time": "9:00AM-6:00PM",
        "desc": "Contemporary art museum with a garden and cafe.",
        "tags": ["Culture & Arts", "Indoor-Friendly"],
        "relevanceScore": 0.5,
    },
    {
        "image": "/images/activities/night_market.jpg",
        "title": "Baguio Night Market",
        "time": "9:00PM-2:00AM",
        "desc": "Street food and thrift finds along Harrison Road.",
        "tags": ["Food & Culinary", "Shopping & Local Finds"],
        "relevanceScore": 0.5,
    },
]

VALID_ITINERARY = {
    "title": "Baguio Highlights",
    "subtitle": "A relaxed day in the city of pines",
    "items": [
        {
            "period": "Day 1 - Morning",
            "activities": [
                {
                    "image": "/images/activities/burnham.jpg",
                    "title": "Burnham Park",
                    "time": "8:00-10:00AM",
                    "desc": "Quiet morning walk around the lake.",
                    "tags": ["Nature & Scenery"],
                }
            ],
        },
        {
            "period": "Day 1 - Afternoon",
            "activities": [
                {
                    "image": "/images/activities/bencab.jpg",
                    "title": "Bencab Museum",
                    "time": "1:00-3:00PM",
                    "desc": "Contemporary art with low afternoon crowds.",
                    "tags": ["Culture & Arts"],
                }
            ],
        },
        {"period": "Day 1 - Evening", "activities": [], "reason": "Rest before dinner."},
    ],
}


@pytest.fixture(scope="session", autouse=True)
def setup_test_logging():
    """Set up logging for tests."""
    setup_logging(LogLevel.DEBUG)


@pytest.fixture
def store():
    """Empty session store."""
    return SessionStore()


@pytest.fixture
def sample_itinerary():
    """Sample itinerary as produced by the retrieval stage."""
    activities = copy.deepcopy(SAMPLE_ACTIVITIES)
    return {
        "title": "Baguio Activity Database",
        "subtitle": "Curated activities matching your preferences",
        "items": [{"period": "Anytime", "activities": activities}],
        "searchMetadata": {
            "allowedActivities": copy.deepcopy(SAMPLE_ACTIVITIES),
            "expandedQueries": ["weekend in Baguio", "Nature & Scenery"],
            "weatherCondition": "clear",
        },
    }


@pytest.fixture
def valid_itinerary_json():
    """Model output that validates on the first pass."""
    return json.dumps(VALID_ITINERARY)


@pytest.fixture
def mock_text_model(valid_itinerary_json):
    """Text model that always returns a valid itinerary."""
    model = MagicMock()
    model.generate = AsyncMock(return_value=valid_itinerary_json)
    model.is_configured = MagicMock(return_value=True)
    return model


@pytest.fixture
def engine_config():
    """Engine configuration without delays or caching."""
    return EngineConfig(
        max_attempts=3,
        timeout_seconds=5.0,
        model_retries=0,
        retry_base_delay_ms=0,
        cache_ttl=0,
    )


@pytest.fixture
def engine(mock_text_model, engine_config):
    """Engine wired to the mock text model."""
    return GuaranteedJsonEngine(
        model=mock_text_model,
        engine_config=engine_config,
        metrics=EngineMetrics(),
        cache=ResultCache(ttl=engine_config.cache_ttl),
    )


@pytest.fixture
def mock_gemini_client(valid_itinerary_json):
    """Mock Gemini client for testing."""
    mock_client = MagicMock()

    mock_response = MagicMock()
    mock_response.text = valid_itinerary_json

    mock_client.aio = MagicMock()
    mock_client.aio.models = MagicMock()
    mock_client.aio.models.generate_content = AsyncMock(return_value=mock_response)

    return mock_client
