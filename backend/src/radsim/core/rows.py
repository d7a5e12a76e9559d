from typing import Optional, List, Dict, Any


def row_id(row) -> str:
    if row is None:
        raise ValueError("No row returned by RETURNING id")
    return str(row["id"] if isinstance(row, dict) else row[0])


def to_dict(cur, row) -> Optional[Dict[str, Any]]:
    """Converts a tuple row through cur.description (dict cursors pass through)."""
    if row is None:
        return None
    if isinstance(row, dict):
        return dict(row)
    cols = [d[0] for d in cur.description] if cur.description else []
    return dict(zip(cols, row))


def fetchone_dict(cur) -> Optional[Dict[str, Any]]:
    return to_dict(cur, cur.fetchone())


def fetchall_dict(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    if not rows:
        return []
    return [to_dict(cur, r) for r in rows]
