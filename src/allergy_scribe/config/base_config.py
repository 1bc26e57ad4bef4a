# ============================================================================
# src/allergy_scribe/config/base_config.py
# ============================================================================
"""
Base Configuration
- Visit store database
- Audit log
"""

from pathlib import Path
from pydantic import Field
from pydantic_settings import BaseSettings


class BaseSettingsConfig(BaseSettings):
    # Visit persistence (SQLite backend only)
    VISIT_DB_PATH: Path = Field(
        default=Path("data/visits.db"),
        description="SQLite database for stored visits and their extractions"
    )

    # Audit trail of extractions and clinician edits
    AUDIT_LOG_PATH: Path = Field(
        default=Path("data/audit.log"),
        description="JSON-lines audit log of extractions and edits"
    )


# Global instance
base_settings = BaseSettingsConfig()
