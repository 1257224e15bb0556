"""
Forecast Export Service - Tabular export of a forecast snapshot.

Builds the grid the forecasting table shows: three rows per record
(current forecast, previous forecast, variance) followed by a totals
row per block. Read-only; nothing flows back into the engine.
"""
from typing import List, Optional

import pandas as pd

from ..entities.forecast_record import ForecastType, month_label

SUMMARY_COLUMNS = ['budget', 'cost_to_complete', 'estimated_at_completion', 'variance']
ROW_TYPES = ('actual', 'previous', 'variance')


class ForecastExportService:
    """Turns ForecastRecordStore snapshots into DataFrames and CSV."""

    def __init__(self, snapshot: dict):
        self.snapshot = snapshot
        self.month_keys: List[str] = list(snapshot.get('month_keys', []))

    def _month_columns(self) -> List[str]:
        return [month_label(k) for k in self.month_keys]

    def _months(self, values: dict) -> dict:
        return {month_label(k): values.get(k, 0.0) for k in self.month_keys}

    def build_frame(self, forecast_type: Optional[ForecastType] = None) -> pd.DataFrame:
        """
        Grid rows for one forecast type (None = every record).

        Summary columns are filled on the actual and totals rows only.
        """
        type_key = ForecastType.parse(forecast_type).value if forecast_type else None
        rows = []

        for record in self.snapshot.get('records', []):
            if type_key and record['forecast_type'] != type_key:
                continue
            code = record['cost_code'] if record['forecast_type'] == 'GC_GR' else record['csi_code']
            description = (
                record['cost_code_description'] if record['forecast_type'] == 'GC_GR'
                else record['csi_description']
            )
            monthly = {
                'actual': record['monthly_distribution'],
                'previous': record['previous_monthly_distribution'],
                'variance': record['monthly_variance'],
            }
            for row_type in ROW_TYPES:
                row = {
                    'record_id': record['id'],
                    'forecast_type': record['forecast_type'],
                    'code': code,
                    'description': description,
                    'row_type': row_type,
                    'method': record['method'] if row_type == 'actual' else None,
                    'weight': record['weight'] if row_type == 'actual' else None,
                }
                for column in SUMMARY_COLUMNS:
                    row[column] = record[column] if row_type == 'actual' else None
                row.update(self._months(monthly[row_type]))
                rows.append(row)

        totals = self.snapshot.get('totals', {}).get(type_key or 'ALL')
        if totals:
            row = {
                'record_id': None,
                'forecast_type': type_key,
                'code': None,
                'description': 'Totals',
                'row_type': 'total',
                'method': None,
                'weight': None,
            }
            for column in SUMMARY_COLUMNS:
                row[column] = totals[column]
            row.update(self._months(totals['monthly_actual']))
            rows.append(row)

        columns = (
            ['record_id', 'forecast_type', 'code', 'description', 'row_type', 'method', 'weight']
            + SUMMARY_COLUMNS
            + self._month_columns()
        )
        return pd.DataFrame(rows, columns=columns)

    def to_csv(self, path: Optional[str] = None, forecast_type: Optional[ForecastType] = None) -> str:
        """
        Render the grid as CSV.

        Args:
            path: Optional file to write
            forecast_type: Restrict to one forecast type

        Returns:
            The CSV text
        """
        csv_text = self.build_frame(forecast_type).to_csv(index=False, float_format="%.2f")
        if path:
            with open(path, 'w', newline='') as f:
                f.write(csv_text)
        return csv_text
