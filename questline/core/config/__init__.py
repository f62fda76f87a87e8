"""
Configuration management subsystem for Questline.

Static vs Dynamic Configuration
--------------------------------
**Static (Config):**
- Loaded from environment variables at startup (.env supported)
- Includes: database URL, pool sizes, environment, log settings
- Changes require a restart or an explicit `Config.load()`

**Dynamic (ConfigManager):**
- Loaded from YAML defaults under `config/`
- Includes: quest balance (rewards, multipliers, quests per day, reset time)
- In-memory overrides via `ConfigManager.set`

Usage
-----
```python
from questline.core.config import ConfigManager

ConfigManager.initialize()
per_day = ConfigManager.get("daily_quests.quests_per_day", default=5)
```
"""

from questline.core.config.config import Config, Environment
from questline.core.config.manager import (
    ConfigManager,
    ConfigManagerError,
    ConfigWriteError,
)

__all__ = [
    "Config",
    "Environment",
    "ConfigManager",
    "ConfigManagerError",
    "ConfigWriteError",
]
