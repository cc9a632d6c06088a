import importlib
import importlib.util
import os
from types import ModuleType
from typing import Any, Callable, List, Optional, Tuple

from pydantic import ValidationError

from .exceptions import ConfigNotFoundError
from .logger import coordinator_logger
from .models import CoordinatorConfig

PACKAGE_NAME = __package__ or "smart_coordinator"
PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))


class _StrategyFailed(Exception):
    """A single resolution strategy did not produce the configuration symbol."""
    pass


class ConfigResolver:
    """
    Locates and loads the coordinator's configuration through an ordered
    fallback:

    1. the `config` module next to this package (package-relative import),
    2. a top-level `config` module (coordinator run as a standalone entry point),
    3. the `config.py` file beside this module, loaded as a freestanding unit.

    The first strategy that yields the configuration symbol wins. There is no
    built-in default: if all strategies fail, `ConfigNotFoundError` is raised.
    """

    def __init__(
        self,
        module_name: str = "config",
        symbol: str = "COORDINATOR_CONFIG",
        package: Optional[str] = PACKAGE_NAME,
        base_dir: str = PACKAGE_DIR,
    ):
        self.module_name = module_name
        self.symbol = symbol
        self.package = package
        self.base_dir = base_dir

    @property
    def config_path(self) -> str:
        return os.path.join(self.base_dir, f"{self.module_name}.py")

    def _strategies(self) -> List[Tuple[str, Callable[[], Any]]]:
        return [
            ("package-relative", self._load_package_relative),
            ("top-level", self._load_top_level),
            ("file-path", self._load_from_file),
        ]

    def _extract(self, module: ModuleType) -> Any:
        if not hasattr(module, self.symbol):
            raise _StrategyFailed(f"module '{module.__name__}' does not define '{self.symbol}'")
        return getattr(module, self.symbol)

    def _load_package_relative(self) -> Any:
        if not self.package:
            raise _StrategyFailed("no package to resolve against")
        module = importlib.import_module(f".{self.module_name}", package=self.package)
        return self._extract(module)

    def _load_top_level(self) -> Any:
        module = importlib.import_module(self.module_name)
        return self._extract(module)

    def _load_from_file(self) -> Any:
        path = self.config_path
        if not os.path.isfile(path):
            raise _StrategyFailed(f"no configuration file at {path}")

        spec = importlib.util.spec_from_file_location(f"_coordinator_{self.module_name}", path)
        if spec is None or spec.loader is None:
            raise _StrategyFailed(f"cannot build a module spec for {path}")

        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        return self._extract(module)

    def resolve(self) -> CoordinatorConfig:
        """Runs the strategies in order and returns the validated configuration."""
        attempts = []
        for name, strategy in self._strategies():
            try:
                raw_config = strategy()
            except (ImportError, _StrategyFailed, OSError) as e:
                coordinator_logger.warning(f"Config strategy '{name}' failed: {e}")
                attempts.append((name, str(e)))
                continue
            except Exception as e:
                attempts.append((name, f"error while loading configuration: {e!r}"))
                coordinator_logger.critical(f"Config strategy '{name}' raised while loading '{self.symbol}': {e!r}")
                raise ConfigNotFoundError(self.symbol, attempts) from e

            if raw_config is None:
                attempts.append((name, f"'{self.symbol}' is None"))
                continue

            try:
                config = self._validate(raw_config)
            except ValidationError as e:
                attempts.append((name, f"invalid configuration: {e}"))
                coordinator_logger.critical(f"Config strategy '{name}' found '{self.symbol}' but it is invalid: {e}")
                raise ConfigNotFoundError(self.symbol, attempts) from e

            coordinator_logger.info(f"Configuration '{self.symbol}' resolved via {name} strategy.")
            return config

        coordinator_logger.critical(f"All configuration strategies failed for '{self.symbol}'.")
        raise ConfigNotFoundError(self.symbol, attempts)

    @staticmethod
    def _validate(raw_config: Any) -> CoordinatorConfig:
        if isinstance(raw_config, CoordinatorConfig):
            return raw_config
        return CoordinatorConfig.model_validate(raw_config)
