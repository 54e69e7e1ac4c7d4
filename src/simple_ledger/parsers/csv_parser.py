from pathlib import Path

import pandas as pd

from simple_ledger.parsers.base import ChartOfAccountsParser


class CsvChartOfAccountsParser(ChartOfAccountsParser):
    """
    Parser for chart-of-accounts CSV exports.

    Expected header: code,name,type[,description][,active]
    Codes are read as text so leading zeros survive.
    """

    SUFFIXES = (".csv",)

    def _read(self, path: Path) -> pd.DataFrame:
        return pd.read_csv(path, dtype={"code": str}, skipinitialspace=True)
