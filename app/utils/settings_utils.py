import json
import os
from pathlib import Path
from typing import Any

import structlog
from pydantic_settings import (
    PydanticBaseSettingsSource,
)

logger = structlog.stdlib.get_logger(__name__)


class DockerSecretsSettingsSource(PydanticBaseSettingsSource):
    """
    Custom settings source that reads Docker secrets from files.

    For any setting, if an environment variable <SETTING_NAME>_FILE exists,
    the value is read from that file path.

    Example:
        If TABLE_API_KEY_FILE=/run/secrets/table_api_key
        Then TABLE_API_KEY will be read from that file

    Complex settings (e.g. TABLE_SEARCH_FIELDS) are expected to hold JSON.
    """

    def get_field_value(
        self, field_name: str, field_info: Any
    ) -> tuple[Any, str, bool]:
        file_env_name = f"{field_name}_FILE"
        file_path = os.getenv(file_env_name)

        if file_path and Path(file_path).exists():
            try:
                secret_value = Path(file_path).read_text().strip()
                return secret_value, field_name, self.field_is_complex(field_info)
            except OSError as e:
                logger.warning(
                    "Could not read secret file",
                    setting=field_name,
                    path=file_path,
                    error=str(e),
                )

        return None, field_name, False

    def prepare_field_value(
        self, field_name: str, field: Any, value: Any, value_is_complex: bool
    ) -> Any:
        if value_is_complex and isinstance(value, str):
            return json.loads(value)
        return value

    def __call__(self) -> dict[str, Any]:
        d: dict[str, Any] = {}

        for field_name, field_info in self.settings_cls.model_fields.items():
            field_value, field_key, value_is_complex = self.get_field_value(
                field_name, field_info
            )
            if field_value is not None:
                d[field_key] = self.prepare_field_value(
                    field_name, field_info, field_value, value_is_complex
                )

        return d
