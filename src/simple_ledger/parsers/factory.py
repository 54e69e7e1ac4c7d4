import importlib
from pathlib import Path
from typing import Any, Dict, Optional, Type

from simple_ledger.config.settings import ConfigLoader
from simple_ledger.parsers.base import ChartOfAccountsParser


class ParserFactory:
    """
    Factory for creating chart-of-accounts parsers.

    Uses a registry to map file formats ('csv', 'xlsx', ...) to parser
    classes. Each factory owns its registry, so tests can build their own
    without touching application state.
    """

    def __init__(self):
        self._registry: Dict[str, Type[ChartOfAccountsParser]] = {}

    def register(self, file_format: str, parser_class: Type[ChartOfAccountsParser]) -> None:
        """
        Register a parser for a file format.

        Args:
            file_format: Format identifier, usually the extension without dot
            parser_class: The parser class

        Raises:
            ValueError: If a parser is already registered for the format
            TypeError: If parser_class doesn't inherit from ChartOfAccountsParser

        Example:
            factory.register('csv', CsvChartOfAccountsParser)
        """
        file_format = file_format.lower()

        if file_format in self._registry:
            raise ValueError(f"Parser for '{file_format}' is already registered")

        if not (isinstance(parser_class, type) and issubclass(parser_class, ChartOfAccountsParser)):
            raise TypeError(f"{parser_class} must inherit from ChartOfAccountsParser")

        self._registry[file_format] = parser_class

    def create_parser(self, file_format: str) -> ChartOfAccountsParser:
        """
        Create a parser instance for the format.

        Raises:
            ValueError: If no parser is registered for this format
        """
        file_format = file_format.lower().lstrip(".")
        if file_format not in self._registry:
            available = ', '.join(sorted(self._registry)) or "none"
            raise ValueError(
                f"No parser registered for '{file_format}'. "
                f"Available formats: {available}"
            )

        return self._registry[file_format]()

    def parser_for(self, filepath, file_format: Optional[str] = None) -> ChartOfAccountsParser:
        """Pick a parser from an explicit format or the file extension."""
        return self.create_parser(file_format or Path(filepath).suffix)

    @property
    def available_formats(self) -> list[str]:
        return sorted(self._registry)

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]] = None) -> "ParserFactory":
        """
        Build a factory with parsers registered from configuration.

        Args:
            config: Optional config dict. If None, loads parsers.json from ConfigLoader.

        Example (testing):
            test_config = {"parsers": [{"format": "csv", "class": "..."}]}
            factory = ParserFactory.from_config(config=test_config)
        """
        if config is None:
            config = ConfigLoader.load_parsers_config()

        factory = cls()
        for parser_config in config['parsers']:
            module_path, class_name = str(parser_config['class']).rsplit('.', 1)
            module = importlib.import_module(module_path)
            factory.register(parser_config['format'], getattr(module, class_name))

        return factory
