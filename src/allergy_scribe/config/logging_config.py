# ============================================================================
# src/allergy_scribe/config/logging_config.py
# ============================================================================
"""
Logging & Monitoring Settings
- Log level
- Log format
- Audit trail
"""

from pydantic import Field
from pydantic_settings import BaseSettings


class LoggingSettings(BaseSettings):
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level"
    )
    LOG_FORMAT_JSON: bool = Field(
        default=False,
        description="Emit JSON log lines instead of plain text"
    )
    ENABLE_AUDIT_TRAIL: bool = Field(
        default=True,
        description="Write extractions and clinician edits to the audit log"
    )


logging_settings = LoggingSettings()
