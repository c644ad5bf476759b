from pathlib import Path
from typing import Annotated

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)


class RelaySettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        extra="ignore"
    )

    ws_host: Annotated[
        str,
        Field(
            description="Bind address for the client-facing websocket listener.",
            default="0.0.0.0"
        )
    ]

    ws_port: Annotated[
        int,
        Field(
            description=(
                "Port for client websocket connections.\n"
                "If set to 0, the OS selects an available port."
            ),
            default=8080,
            ge=0,
            le=65535
        )
    ]

    pricer_host: Annotated[
        str,
        Field(
            description="Hostname of the pricer daemon dialled for every client.",
            default="pricer-cpp"
        )
    ]

    pricer_port: Annotated[
        int,
        Field(
            description="TCP port of the pricer daemon.",
            default=9000,
            ge=1,
            le=65535
        )
    ]

    max_pending_results: Annotated[
        int,
        Field(
            description=(
                "Maximum number of decoded pricer results a session may hold\n"
                "while its client is not keeping up. When exceeded, the session\n"
                "is ended with an overflow error. 0 disables the limit."
            ),
            default=10_000,
            ge=0
        )
    ]

    timeout_graceful_shutdown: Annotated[
        float,
        Field(
            description="Maximum time allowed for sessions to end on shutdown.",
            default=5.0,
            ge=0
        )
    ]

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            YamlConfigSettingsSource(settings_cls),
        )

    @classmethod
    def from_yaml(cls, path: Path) -> "RelaySettings":
        """
        Load settings from a YAML file, still overridable from the
        environment.
        """
        class FileRelaySettings(cls):  # type: ignore[valid-type, misc]
            model_config = SettingsConfigDict(yaml_file=path)

        return FileRelaySettings()
