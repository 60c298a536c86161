# module marketplace.app
import logging

from marketplace.app_setup.factory import create_app
from marketplace.config import LOG_LEVEL

logging.basicConfig(level=LOG_LEVEL.upper())

# App globale
app = create_app()
