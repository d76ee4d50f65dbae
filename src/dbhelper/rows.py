"""
Row materialization
Converts an executed psycopg cursor into plain string-keyed, string-valued mappings
"""
from typing import Dict, Iterator, List, Optional

NULL_VALUE = ""


def column_names(cursor) -> List[str]:
    """Column names of the current result, empty for statements without rows"""
    if cursor.description is None:
        return []
    return [desc[0] for desc in cursor.description]


def _decode(value: Optional[bytes], encoding: str) -> str:
    if value is None:
        return NULL_VALUE
    return bytes(value).decode(encoding)


def iter_text_rows(cursor) -> Iterator[List[str]]:
    """
    Yield every row of the current result as a list of strings

    Values are the text representation sent by the server, so a boolean reads
    "t" and a timestamp reads the way psql prints it. SQL NULL becomes "".
    """
    result = cursor.pgresult
    if result is None or cursor.description is None:
        return

    encoding = cursor.connection.info.encoding
    for row in range(result.ntuples):
        yield [_decode(result.get_value(row, col), encoding) for col in range(result.nfields)]


def row_mapping(cursor) -> Dict[str, str]:
    """
    Drain the cursor into a single mapping

    Rows are applied in order, so with more than one row the last row's value
    wins for each column name.
    """
    columns = column_names(cursor)
    mapping: Dict[str, str] = {}
    for values in iter_text_rows(cursor):
        for name, value in zip(columns, values):
            mapping[name] = value
    return mapping


def result_set(cursor) -> List[Dict[str, str]]:
    """Drain the cursor into one mapping per row, in server order"""
    columns = column_names(cursor)
    return [dict(zip(columns, values)) for values in iter_text_rows(cursor)]
