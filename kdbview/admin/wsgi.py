from kdbview.environment import setup_logging, setup_sentry

setup_logging()
setup_sentry()

from kdbview.admin.views import create_application  # noqa: E402

application = create_application()
