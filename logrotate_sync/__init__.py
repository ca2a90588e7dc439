"""
logrotate-sync - Declarative logrotate configuration manager

Converges a host's logrotate configuration to a declared state:
- Renders /etc/logrotate.conf and managed drop-ins under /etc/logrotate.d
- Only touches files carrying the reserved "managed-" prefix
- One-time backup of the original global config
- Per-host Markdown/JSON documentation
"""

__version__ = "0.1.0"

from logrotate_sync.core.engine import LogrotateEngine
from logrotate_sync.config.models import LogrotateConfig

__all__ = ["LogrotateEngine", "LogrotateConfig", "__version__"]
