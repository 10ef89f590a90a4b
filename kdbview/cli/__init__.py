from __future__ import annotations

import logging
import os
import time
from typing import Any

import click
import sentry_sdk
import structlog

from kdbview.environment import metrics as environment_metrics
from kdbview.environment import setup_logging, setup_sentry
from kdbview.utils.metrics.wrapper import MetricsWrapper

setup_sentry()


setup_logging("DEBUG")
logger = logging.getLogger("kdbview_init")

start = time.perf_counter()
metrics = MetricsWrapper(environment_metrics, "cli")

plugin_folder = os.path.dirname(__file__)


class KdbviewCLI(click.MultiCommand):
    def list_commands(self, ctx: Any) -> list[str]:
        rv = []
        for filename in os.listdir(plugin_folder):
            if filename.endswith(".py") and filename != "__init__.py":
                # click turns underscores into dashes in command names
                rv.append(filename[:-3].replace("_", "-"))
        rv.sort()
        return rv

    def get_command(self, ctx: Any, name: str) -> click.Command | None:
        actual_command_name = name.replace("-", "_")
        fn = os.path.join(plugin_folder, actual_command_name + ".py")
        if not os.path.isfile(fn):
            return None

        with sentry_sdk.start_transaction(
            op="kdbview_init", name=f"[cli init] {name}", sampled=True
        ):
            ns: dict[str, click.Command] = {}
            with open(fn) as f:
                code = compile(f.read(), fn, "exec")
                eval(code, ns, ns)
            init_time = time.perf_counter() - start
            metrics.timing("kdbview_init_time", init_time)
            logger.info(f"kdbview initialization took {init_time}s")
        return ns[actual_command_name]


@click.command(cls=KdbviewCLI)
@click.version_option()
def main() -> None:
    """Browse kdb+ tables and chart query results as heatmaps."""


structlog.reset_defaults()
setup_logging()
