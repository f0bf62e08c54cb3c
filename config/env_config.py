"""Environment-backed configuration lookup."""
import os
from pathlib import Path
from typing import Dict, Optional
from dotenv import dotenv_values


class EnvConfig:
    """String key/value configuration with typed accessors.

    Values come from the process environment overlaid with a ``.env`` file
    in the working directory (the file wins when both define a key).
    """
    
    def __init__(self, env_path: Optional[Path] = None, values: Optional[Dict[str, str]] = None):
        if values is not None:
            self._values = dict(values)
            return
        
        env_path = env_path or Path.cwd() / ".env"
        self._values = dict(os.environ)
        if env_path.exists():
            self._values.update({k: v for k, v in dotenv_values(env_path).items() if v is not None})
    
    def get(self, key: str, default: Optional[str] = None) -> str:
        """Get a text value; empty values fall back to the default."""
        value = self._values.get(key)
        if not value and default is not None:
            return default
        return value or ""
    
    def get_bool(self, key: str, default: bool = False) -> bool:
        """Get a boolean value ("true" in any casing is True)."""
        value = self.get(key)
        if not value:
            return default
        return value.lower() == "true"
    
    def get_number(self, key: str, default: Optional[float] = None) -> float:
        """Get a numeric value; unparsable values fall back to the default (or 0)."""
        value = self.get(key)
        if not value and default is not None:
            return default
        try:
            return float(value)
        except ValueError:
            return default or 0


env_config = EnvConfig()
