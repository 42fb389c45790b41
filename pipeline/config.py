import os
from dataclasses import dataclass
from typing import Optional, Tuple

from dotenv import load_dotenv

from governance.batch import DEFAULT_EXEMPT_LOCATIONS


@dataclass(frozen=True)
class PipelineConfig:
    root: str = "."
    rules_path: Optional[str] = None
    lod_settings_path: Optional[str] = None
    exempt_locations: Tuple[str, ...] = DEFAULT_EXEMPT_LOCATIONS
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env_path=None):
        """Reads ASSET_* variables, after loading a .env file if one exists."""
        load_dotenv(env_path)

        exempt = os.getenv("ASSET_EXEMPT_LOCATIONS")
        if exempt is not None:
            exempt_locations = tuple(item.strip() for item in exempt.split(",") if item.strip())
        else:
            exempt_locations = DEFAULT_EXEMPT_LOCATIONS

        return cls(
            root=os.getenv("ASSET_ROOT", "."),
            rules_path=os.getenv("ASSET_RULES_PATH") or None,
            lod_settings_path=os.getenv("ASSET_LOD_SETTINGS_PATH") or None,
            exempt_locations=exempt_locations,
            log_level=os.getenv("ASSET_LOG_LEVEL", "INFO").upper(),
        )
