"""Flask blueprints."""

from . import api
