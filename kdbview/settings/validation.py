from typing import Any, Mapping


def validate_settings(locals: Mapping[str, Any]) -> None:
    if locals["TABLE_PAGE_MAX_LIMIT"] < 1:
        raise ValueError("TABLE_PAGE_MAX_LIMIT must be a positive number of rows")

    if not 1 <= locals["TABLE_PAGE_DEFAULT_LIMIT"] <= locals["TABLE_PAGE_MAX_LIMIT"]:
        raise ValueError(
            "TABLE_PAGE_DEFAULT_LIMIT must be between 1 and TABLE_PAGE_MAX_LIMIT"
        )

    if locals["TYPE_INFERENCE_SAMPLE_SIZE"] < 1:
        raise ValueError("TYPE_INFERENCE_SAMPLE_SIZE must be at least 1")

    if (locals["DOGSTATSD_HOST"] is None) != (locals["DOGSTATSD_PORT"] is None):
        raise ValueError(
            "DOGSTATSD_HOST and DOGSTATSD_PORT must be provided together"
        )

    for metric, rate in locals["DOGSTATSD_SAMPLING_RATES"].items():
        if not 0.0 <= rate <= 1.0:
            raise ValueError(f"sampling rate for {metric} must be within [0, 1]")
