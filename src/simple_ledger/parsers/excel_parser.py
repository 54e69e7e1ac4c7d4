from pathlib import Path

import pandas as pd

from simple_ledger.parsers.base import ChartOfAccountsParser


class ExcelChartOfAccountsParser(ChartOfAccountsParser):
    """
    Parser for chart-of-accounts spreadsheets (.xlsx/.xls).

    Reads the first sheet; the first row must hold the column headers.
    """

    SUFFIXES = (".xlsx", ".xls")

    def _read(self, path: Path) -> pd.DataFrame:
        return pd.read_excel(path, sheet_name=0, dtype={"code": str})
