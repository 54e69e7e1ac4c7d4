from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List

import pandas as pd

from simple_ledger.domain.enums import AccountType
from simple_ledger.domain.models import Account

REQUIRED_COLUMNS = ["code", "name", "type"]

_TRUTHY = {"1", "true", "yes", "y", "active"}
_FALSY = {"0", "false", "no", "n", "inactive"}


def _parse_active(value: Any, row_number: int) -> bool:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return True
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUTHY:
        return True
    if text in _FALSY:
        return False
    raise ValueError(f"Row {row_number}: cannot read active flag {value!r}")


def _clean(value: Any) -> str:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    if isinstance(value, float) and value.is_integer():
        # Spreadsheets turn codes like 1000 into 1000.0
        return str(int(value))
    return str(value).strip()


def accounts_from_records(records: Iterable[Dict[str, Any]]) -> List[Account]:
    """
    Build unsaved Account objects from plain records.

    Each record needs 'code', 'name' and 'type'; 'description' and
    'active' are optional. The normal balance always follows the type.

    Raises:
        ValueError: If a record is incomplete or names an unknown type
    """
    accounts = []
    for row_number, record in enumerate(records, start=1):
        code = _clean(record.get("code"))
        name = _clean(record.get("name"))
        type_value = _clean(record.get("type")).lower()

        if not code or not name:
            raise ValueError(f"Row {row_number}: code and name are required")

        try:
            account_type = AccountType(type_value)
        except ValueError:
            valid = ", ".join(t.value for t in AccountType)
            raise ValueError(
                f"Row {row_number}: unknown account type {type_value!r} (expected one of {valid})"
            )

        accounts.append(Account.create(
            code=code,
            name=name,
            type=account_type,
            active=_parse_active(record.get("active"), row_number),
            description=_clean(record.get("description")),
        ))
    return accounts


class ChartOfAccountsParser(ABC):
    """
    Abstract base class for chart-of-accounts file parsers.

    Strategy pattern - each file format gets its own concrete parser;
    the DataFrame-to-Account mapping is shared.
    """

    SUFFIXES: tuple = ()

    @abstractmethod
    def _read(self, path: Path) -> pd.DataFrame:
        """Read the file into a DataFrame with the raw columns."""
        pass

    def validate_file(self, filepath) -> None:
        """
        Validate that the file exists and has a supported extension.

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If the extension is not handled by this parser
        """
        path = Path(filepath)

        if not path.exists():
            raise FileNotFoundError(f"File does not exist on path {path}")

        if path.suffix.lower() not in self.SUFFIXES:
            expected = " or ".join(self.SUFFIXES)
            raise ValueError(f"File must be {expected}, got {path.suffix}")

    def parse(self, filepath) -> List[Account]:
        """
        Parse a chart-of-accounts file.

        Args:
            filepath: Path to the file

        Returns:
            List of unsaved Account objects, in file order

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If file format or contents are invalid
        """
        self.validate_file(filepath)

        try:
            df = self._read(Path(filepath))
        except Exception as e:
            raise ValueError(f"Failed to read {filepath}: {e}") from e

        df.columns = [str(c).strip().lower() for c in df.columns]
        missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
        if missing:
            raise ValueError(f"Missing required columns: {', '.join(missing)}")

        df = df.dropna(how="all")
        return accounts_from_records(df.to_dict(orient="records"))
