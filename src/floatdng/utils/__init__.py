from .logging_utils import configure_logging
from .rational import approximate_rational

__all__ = ["approximate_rational", "configure_logging"]
