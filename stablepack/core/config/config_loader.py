# -----------------------------------------------------------------------------
# /*
#  * Copyright (C) 2025 CodeStory
#  *
#  * This program is free software; you can redistribute it and/or modify
#  * it under the terms of the GNU General Public License as published by
#  * the Free Software Foundation; Version 2.
#  *
#  * This program is distributed in the hope that it will be useful,
#  * but WITHOUT ANY WARRANTY; without even the implied warranty of
#  * MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
#  * GNU General Public License for more details.
#  *
#  * You should have received a copy of the GNU General Public License
#  * along with this program; if not, you can contact us at support@codestory.build
#  */
# -----------------------------------------------------------------------------

import os
from pathlib import Path

import pydantic
import tomllib
from loguru import logger
from pydantic import BaseModel

from ..exceptions import ConfigurationError


class ConfigLoader:
    """Handles loading and merging configuration from multiple sources into a unified model."""

    @staticmethod
    def get_full_config(
        config_model: type[BaseModel],
        input_args: dict,
        local_config_path: Path,
        env_app_prefix: str,
        global_config_path: Path,
        custom_config_path: Path | None = None,
    ):
        """
        Merges configuration from multiple sources with priority: input args,
        custom config, local config, environment variables, global config.
        Keys no source sets keep the model defaults.
        """

        sources = [
            ("input args", input_args),
            ("local config", ConfigLoader.load_toml(local_config_path)),
            ("environment", ConfigLoader.load_env(env_app_prefix)),
            ("global config", ConfigLoader.load_toml(global_config_path)),
        ]

        if custom_config_path is not None:
            if not custom_config_path.exists():
                raise ConfigurationError(
                    f"Custom config not found: {custom_config_path}",
                    "Check the path given to --custom-config",
                )
            # custom config is priority #2
            sources.insert(1, ("custom config", ConfigLoader.load_toml(custom_config_path)))

        try:
            return ConfigLoader.build(config_model, sources)
        except pydantic.ValidationError as e:
            raise ConfigurationError("Invalid configuration", str(e)) from e

    @staticmethod
    def load_toml(path: Path):
        """Loads configuration data from a TOML file, returning an empty dict if the file doesn't exist or is invalid."""

        if not path.exists():
            logger.debug(f"{path} does not exist")
            return {}

        data = {}
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            logger.warning(f"Failed to load {path}: {e}")

        return data

    @staticmethod
    def load_env(app_prefix: str):
        """Extracts configuration values from environment variables prefixed with the app prefix, converting keys to lowercase."""

        data = {}
        for k, v in os.environ.items():
            if k.lower().startswith(app_prefix.lower()):
                key_clean = k[len(app_prefix) :].lower()
                data[key_clean] = v

        return data

    @staticmethod
    def build(config_model: type[BaseModel], sources: list[tuple[str, dict]]):
        """Takes every key from the highest priority source that sets it."""

        final_data = {}
        for name, data in sources:
            for key in sorted(config_model.model_fields.keys() & data.keys()):
                if key not in final_data:
                    final_data[key] = data[key]
                    logger.debug(f"{key} from {name}")

        return config_model.model_validate(final_data)
