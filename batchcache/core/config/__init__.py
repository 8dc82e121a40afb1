"""
Configuration subsystem for batchcache.

Static configuration only: values come from environment variables (with
.env support) and are validated on import.

Usage
-----
```python
from batchcache.core.config import Config

url = Config.DATABASE_URL
if Config.CACHE_CONCURRENT_IO:
    ...
```
"""

from batchcache.core.config.config import Config, Environment

__all__ = [
    "Config",
    "Environment",
]
