from __future__ import annotations

import os
from typing import Any, Mapping, MutableMapping, Optional

from kdbview.settings.validation import validate_settings

# All settings must be uppercased and have a default value. Override modules
# selected through KDBVIEW_SETTINGS replace any upper-case attribute below.

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s %(message)s"

TESTING = False
DEBUG = True

##################
# Admin Settings #
##################

ADMIN_HOST = os.environ.get("ADMIN_HOST", "0.0.0.0")
ADMIN_PORT = int(os.environ.get("ADMIN_PORT", 3001))

######################
# End Admin Settings #
######################

# kdb+ process the CLI connects to when no host/port is given
KDB_HOST = os.environ.get("KDB_HOST", "localhost")
KDB_PORT = int(os.environ.get("KDB_PORT", 5000))
KDB_USERNAME = os.environ.get("KDB_USERNAME", "")
KDB_PASSWORD = os.environ.get("KDB_PASSWORD", "")
# seconds, 0 waits forever
KDB_TIMEOUT = float(os.environ.get("KDB_TIMEOUT", 0.0))

TABLE_PAGE_DEFAULT_LIMIT = 100
TABLE_PAGE_MAX_LIMIT = 10000

# Number of leading non-null samples used to infer a column type. 1 keeps the
# historical single-sample behavior; larger values take a majority vote.
TYPE_INFERENCE_SAMPLE_SIZE = 1

SENTRY_DSN: str | None = None
SENTRY_TRACE_SAMPLE_RATE = 0.0

DOGSTATSD_HOST: str | None = None
DOGSTATSD_PORT: int | None = None
DOGSTATSD_SAMPLING_RATES: Mapping[str, float] = {}


def _load_settings(obj: MutableMapping[str, Any] = locals()) -> None:
    """Load settings from the path provided in the KDBVIEW_SETTINGS environment
    variable if provided. Users can provide a short name like `test` that will
    be expanded to `settings_test.py` in this directory, or they can provide a
    full absolute path such as `/foo/bar/my_settings.py`."""

    import importlib
    import importlib.abc
    import importlib.util

    settings: Optional[str] = os.environ.get("KDBVIEW_SETTINGS")

    if settings:
        if settings.startswith("/"):
            if not settings.endswith(".py"):
                settings += ".py"

            settings_spec = importlib.util.spec_from_file_location(
                "kdbview.settings.custom", settings
            )
            assert settings_spec is not None
            settings_module = importlib.util.module_from_spec(settings_spec)
            assert isinstance(settings_spec.loader, importlib.abc.Loader)
            settings_spec.loader.exec_module(settings_module)
        else:
            module_format = (
                ".%s" if settings.startswith("settings_") else ".settings_%s"
            )
            settings_module = importlib.import_module(
                module_format % settings, "kdbview.settings"
            )

        for attr in dir(settings_module):
            if attr.isupper():
                obj[attr] = getattr(settings_module, attr)


_load_settings()
validate_settings(locals())
