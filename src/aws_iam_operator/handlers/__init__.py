"""Handler modules for CRD resources."""

from .base import BaseHandler
from .watches import setup_watches

__all__ = ["BaseHandler", "setup_watches"]
