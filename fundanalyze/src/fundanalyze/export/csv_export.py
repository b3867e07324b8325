import csv
from pathlib import Path
from typing import List, Dict, Any

PRIORITY_FIELDS = ['symbol', 'name', 'sector', 'industry', 'exchange', 'marketCap', 'currentPrice']


def export_fundamentals_csv(data: Dict[str, Any], path: Path):
    """Export a camelCase fundamentals record to vertical CSV (Field, Value)."""
    rows = []

    for k in PRIORITY_FIELDS:
        if k in data:
            rows.append((k, data[k]))

    # Series go to their own files
    for k, v in data.items():
        if k not in PRIORITY_FIELDS and not isinstance(v, (dict, list)):
            rows.append((k, v))

    with open(path, 'w', newline='') as f:
        writer = csv.writer(f)
        writer.writerow(['Field', 'Value'])
        writer.writerows(rows)


def _export_series(rows: List[Dict[str, Any]], headers: List[str], path: Path) -> bool:
    if not rows:
        return False

    with open(path, 'w', newline='') as f:
        writer = csv.DictWriter(f, fieldnames=headers, extrasaction='ignore')
        writer.writeheader()
        writer.writerows(rows)
    return True


def export_price_history_csv(data: Dict[str, Any], path: Path) -> bool:
    """Export the sparkline closes (oldest first). Returns False when there are none."""
    return _export_series(data.get('priceHistory') or [], ['date', 'close'], path)


def export_revenue_history_csv(data: Dict[str, Any], path: Path) -> bool:
    """Export annual revenue (oldest first). Returns False when there is none."""
    return _export_series(data.get('revenueHistory') or [], ['year', 'revenue'], path)
