from typing import Any, Dict

import pytest

from kdbview import settings
from kdbview.settings.validation import validate_settings


def current_settings(**overrides: Any) -> Dict[str, Any]:
    values = {attr: getattr(settings, attr) for attr in dir(settings) if attr.isupper()}
    values.update(overrides)
    return values


def test_test_settings_are_loaded() -> None:
    assert settings.TESTING
    assert settings.TABLE_PAGE_DEFAULT_LIMIT == 50
    validate_settings(current_settings())


@pytest.mark.parametrize(
    "overrides",
    [
        {"TABLE_PAGE_MAX_LIMIT": 0},
        {"TABLE_PAGE_DEFAULT_LIMIT": 20000},
        {"TYPE_INFERENCE_SAMPLE_SIZE": 0},
        {"DOGSTATSD_HOST": "127.0.0.1", "DOGSTATSD_PORT": None},
        {"DOGSTATSD_SAMPLING_RATES": {"kdb.query": 1.5}},
    ],
)
def test_invalid_settings(overrides: Dict[str, Any]) -> None:
    with pytest.raises(ValueError):
        validate_settings(current_settings(**overrides))
