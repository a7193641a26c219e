"""
Configuration resolution for the stream job.

Parameters come from one of two providers, chosen once at startup:
- LocalArgsProvider: key=value tokens passed on the command line (local runs)
- ManagedPropertiesProvider: a named property group from the runtime properties
  file that Managed Service for Apache Flink writes for the application
"""
import json
import logging
from collections.abc import Mapping

from shared.config import (
    APPLICATION_PROPERTIES_FILE, APPLICATION_PROPERTY_GROUP, IS_LOCAL
)
from shared.errors import ConfigurationError

logger = logging.getLogger(__name__)


class ParameterSet(Mapping):
    """Read-only string to string mapping of resolved job parameters."""

    def __init__(self, values=None):
        self._values = {str(k): str(v) for k, v in dict(values or {}).items()}

    def __getitem__(self, key):
        return self._values[key]

    def __iter__(self):
        return iter(self._values)

    def __len__(self):
        return len(self._values)

    def __repr__(self):
        return f"ParameterSet({self._values!r})"

    def get(self, key, default=None):
        return self._values.get(key, default)

    def to_dict(self) -> dict:
        return dict(self._values)


class LocalArgsProvider:
    """Reads parameters from key=value process arguments."""

    def __init__(self, args):
        self.args = list(args or [])

    def load(self) -> dict:
        values = {}
        for token in self.args:
            key, sep, value = token.partition("=")
            key = key.lstrip("-").strip()
            if not sep or not key:
                raise ConfigurationError(
                    f"Invalid argument {token!r}, expected key=value",
                    context={"token": token},
                )
            values[key] = value
        return values


class ManagedPropertiesProvider:
    """Reads one property group from the runtime application properties file."""

    def __init__(self, path: str = APPLICATION_PROPERTIES_FILE,
                 group_id: str = APPLICATION_PROPERTY_GROUP):
        self.path = path
        self.group_id = group_id

    def load(self) -> dict:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                groups = json.load(f)
        except (OSError, ValueError) as e:
            raise ConfigurationError(
                f"Unable to read runtime properties from {self.path}",
                cause=e,
                context={"path": self.path},
            ) from e

        for group in groups if isinstance(groups, list) else []:
            if isinstance(group, dict) and group.get("PropertyGroupId") == self.group_id:
                property_map = group.get("PropertyMap") or {}
                if not isinstance(property_map, dict):
                    raise ConfigurationError(
                        f"PropertyMap of {self.group_id} is not an object",
                        context={"path": self.path, "group_id": self.group_id},
                    )
                return {str(k): str(v) for k, v in property_map.items()}

        raise ConfigurationError(
            f"Unable to load {self.group_id} properties from runtime properties",
            context={"path": self.path, "group_id": self.group_id},
        )


def select_provider(args, is_local: bool = IS_LOCAL,
                    properties_file: str = APPLICATION_PROPERTIES_FILE):
    """Pick the configuration provider for the current execution context."""
    if is_local:
        logger.info("Local execution, reading parameters from process arguments")
        return LocalArgsProvider(args)
    logger.info(f"Managed execution, reading {APPLICATION_PROPERTY_GROUP} from {properties_file}")
    return ManagedPropertiesProvider(properties_file)


def resolve(provider) -> ParameterSet:
    """Load a parameter set from the given provider."""
    return ParameterSet(provider.load())


def resolve_parameters(args, is_local: bool = IS_LOCAL,
                       properties_file: str = APPLICATION_PROPERTIES_FILE) -> ParameterSet:
    """
    Resolve job parameters for the current execution context.

    Args:
        args: Process arguments, used only in local mode
        is_local: Whether the job runs outside the managed service
        properties_file: Runtime properties file, used only in managed mode

    Returns:
        ParameterSet

    Raises:
        ConfigurationError: if the managed property group is missing or an
            argument is not a key=value token
    """
    return resolve(select_provider(args, is_local, properties_file))
