from gestetner.core.app_factory import create_app
from gestetner.core.config import settings
from gestetner.core.logging import configure_logging

configure_logging(settings.log)

app = create_app(settings)
