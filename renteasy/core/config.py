import os
from copy import deepcopy
from typing import Any, Dict, List, Optional, Tuple, Union, get_args, get_origin

from pydantic import BaseModel, SecretStr
from pydantic_settings import BaseSettings

# Union alias used for configuration overrides and settings
SettingsLike = Union[
    Dict[str, Any],
    List[Union[Dict[str, Any], BaseSettings, BaseModel]],
    BaseSettings,
    BaseModel,
    None,
]

SECRET_MASK = "********"


class _AttrView:
    """
    Lightweight attribute-access wrapper around a mapping.

    Enables access like obj.SECTION.KEY for nested dictionaries.
    """

    def __init__(self, data: Dict[str, Any]):
        self._data = data

    def __getattr__(self, name: str):
        if name in self._data:
            return _wrap(self._data[name])
        raise AttributeError(f"No such attribute: {name}")

    def __getitem__(self, key: str):
        return _wrap(self._data[key])

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def get(self, key: str, default: Any = None) -> Any:
        return _wrap(self._data[key]) if key in self._data else default

    def __repr__(self) -> str:
        return f"_AttrView({self._data!r})"


def _wrap(value: Any) -> Any:
    if isinstance(value, dict):
        return _AttrView(value)
    if isinstance(value, list):
        return [(_AttrView(v) if isinstance(v, dict) else v) for v in value]
    return value


class Config(dict):
    """
    Unified configuration mapping for RentEasy components.

    Consolidates configuration from dictionaries and Pydantic `BaseModel` / `BaseSettings` objects, overlays
    environment variables (`SECTION__KEY=value`) and masks secret fields.

    Unlike a plain dict, values keep their types (ints stay ints, bools stay bools). Secret values (`SecretStr`
    fields) are replaced by a mask; use `get_secret` for the real value.

    Args:
        extra_settings: Configuration overrides or full config objects.
            Can be a `dict`, `BaseSettings`, `BaseModel`, or list of any of these.
        apply_env: Whether to overlay environment variables on top of the given settings.

    Example:
        >>> from renteasy.core.config import Config
        >>> config = Config({"RENTEASY": {"MONGO_DB": "renteasy"}})
        >>> config.RENTEASY.MONGO_DB
        'renteasy'
    """

    def __init__(self, extra_settings: SettingsLike = None, *, apply_env: bool = True):
        self._secret_paths: set[Tuple[str, ...]] = set()
        self._secrets: Dict[Tuple[str, ...], str] = {}

        base: Dict[str, Any] = {}
        for override in self._normalize(extra_settings):
            base = self._deep_update_dict(base, override)

        if apply_env:
            base = self._apply_env_overrides(base)

        super().__init__(self._mask_secrets(base))

    def __getattr__(self, name: str):
        """Enable attribute-style access for top-level keys."""
        if name.startswith("_"):
            raise AttributeError(name)
        if name in self:
            return _wrap(self[name])
        raise AttributeError(f"No such attribute: {name}")

    @classmethod
    def load(
        cls,
        *,
        defaults: Optional[Union[Dict[str, Any], BaseSettings, BaseModel]] = None,
        overrides: SettingsLike = None,
    ) -> "Config":
        """Create a Config from optional defaults, environment variables and runtime overrides.

        Precedence, lowest first: defaults, environment, overrides.
        """
        config = cls(apply_env=False)
        base: Dict[str, Any] = {}
        for item in config._normalize(defaults):
            base = cls._deep_update_dict(base, item)
        base = cls._apply_env_overrides(base)
        for item in config._normalize(overrides):
            base = cls._deep_update_dict(base, item)

        dict.update(config, config._mask_secrets(base))
        return config

    def clone_with_overrides(self, *overrides: SettingsLike) -> "Config":
        """Return a new Config clone with overrides applied (original remains unchanged)."""
        revealed = self.to_revealed_dict()
        clone = Config(apply_env=False)
        clone._secret_paths = set(self._secret_paths)
        for override in overrides:
            for item in clone._normalize(override):
                revealed = self._deep_update_dict(revealed, item)
        dict.update(clone, clone._mask_secrets(revealed))
        return clone

    def get_secret(self, *path: str) -> Optional[str]:
        """Retrieve a secret by path components, e.g., get_secret("RENTEASY", "MINIO_SECRET_KEY")."""
        return self._secrets.get(tuple(path))

    def secret_paths(self) -> List[str]:
        """Return dotted paths of fields considered secrets."""
        return sorted(".".join(p) for p in self._secret_paths)

    def to_revealed_dict(self) -> Dict[str, Any]:
        """Return a deep copy of the configuration with secrets un-masked."""
        data = deepcopy(dict(self))
        for path, value in self._secrets.items():
            node = data
            for key in path[:-1]:
                node = node.setdefault(key, {})
            node[path[-1]] = value
        return data

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _normalize(self, settings: SettingsLike) -> List[Dict[str, Any]]:
        """Flatten settings into a list of dicts, recording secret paths of typed models."""
        if settings is None:
            return []
        if isinstance(settings, list):
            items: List[Dict[str, Any]] = []
            for item in settings:
                items.extend(self._normalize(item))
            return items
        if isinstance(settings, (BaseSettings, BaseModel)):
            self._secret_paths.update(self._collect_secret_paths_from_model(type(settings)))
            return [settings.model_dump()]
        if isinstance(settings, dict):
            return [self._dump_nested_models(settings)]
        raise TypeError(f"Unsupported settings type: {type(settings).__name__}")

    def _dump_nested_models(self, data: Dict[str, Any], prefix: Tuple[str, ...] = ()) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for key, value in data.items():
            if isinstance(value, (BaseSettings, BaseModel)):
                self._secret_paths.update(self._collect_secret_paths_from_model(type(value), prefix + (key,)))
                result[key] = value.model_dump()
            elif isinstance(value, dict):
                result[key] = self._dump_nested_models(value, prefix + (key,))
            else:
                result[key] = value
        return result

    @staticmethod
    def _deep_update_dict(base: dict, override: dict) -> dict:
        result = deepcopy(base)
        for k, v in (override or {}).items():
            if isinstance(v, dict) and isinstance(result.get(k), dict):
                result[k] = Config._deep_update_dict(result[k], v)
            else:
                result[k] = deepcopy(v)
        return result

    @staticmethod
    def _apply_env_overrides(base: dict, delimiter: str = "__") -> dict:
        """Overlay `SECTION__KEY` environment variables onto sections that already exist in `base`."""
        result = deepcopy(base)
        for env_key, env_value in os.environ.items():
            if delimiter not in env_key:
                continue
            parts = [p.strip().upper() for p in env_key.split(delimiter) if p.strip()]
            if len(parts) < 2 or parts[0] not in result:
                continue
            node = result
            for key in parts[:-1]:
                if key not in node or not isinstance(node[key], dict):
                    node[key] = {}
                node = node[key]
            node[parts[-1]] = Config._coerce_env_value(env_value)
        return result

    @staticmethod
    def _coerce_env_value(value: str) -> Any:
        lower = value.lower()
        if lower in {"true", "false"}:
            return lower == "true"
        if value.isdigit() or (value.startswith("-") and value[1:].isdigit()):
            return int(value)
        try:
            return float(value)
        except ValueError:
            return value

    def _mask_secrets(self, data: Dict[str, Any]) -> Dict[str, Any]:
        def convert(v: Any, path: Tuple[str, ...]) -> Any:
            if isinstance(v, SecretStr):
                self._secret_paths.add(path)
                self._secrets[path] = v.get_secret_value()
                return SECRET_MASK
            if isinstance(v, dict):
                return {k: convert(x, path + (k,)) for k, x in v.items()}
            if path in self._secret_paths and v is not None:
                self._secrets[path] = str(v)
                return SECRET_MASK
            if isinstance(v, str) and v.startswith("~"):
                return os.path.expanduser(v)
            return v

        return convert(data, ())

    def _collect_secret_paths_from_model(
        self, model_cls: type[BaseModel], prefix: Tuple[str, ...] = ()
    ) -> set[Tuple[str, ...]]:
        paths: set[Tuple[str, ...]] = set()
        fields = getattr(model_cls, "model_fields", {})
        for name, field in fields.items():
            ann = field.annotation
            if self._is_secret_annotation(ann):
                paths.add(prefix + (name,))
                continue
            nested_cls = self._extract_model_class(ann)
            if nested_cls is not None:
                paths.update(self._collect_secret_paths_from_model(nested_cls, prefix + (name,)))
        return paths

    @staticmethod
    def _is_secret_annotation(ann: Any) -> bool:
        if ann is SecretStr:
            return True
        if get_origin(ann) is Union:
            return any(a is SecretStr for a in get_args(ann))
        return False

    @staticmethod
    def _extract_model_class(ann: Any) -> Optional[type]:
        candidates = get_args(ann) if get_origin(ann) is Union else (ann,)
        for a in candidates:
            if isinstance(a, type) and issubclass(a, BaseModel):
                return a
        return None
