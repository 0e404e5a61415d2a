"""
Configuration module for the voice agent bridge.

Key components:
- constants: Wire tags, close codes, defaults and flow-control limits shared
  across modules.
- settings: Immutable process settings loaded once from the environment,
  including the BridgeOptions that select bridge behaviour.
- logging_config: Console and rotating file logging under a single logger.

Usage examples:
```python
from agent_bridge.config.logging_config import configure_logging
from agent_bridge.config.settings import load_settings

logger = configure_logging()
settings = load_settings()
logger.info(f"Voice agent endpoint: {settings.agent_url}")
```
"""
