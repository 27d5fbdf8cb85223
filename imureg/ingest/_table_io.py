"""Read and write orientation tables as text files with a small metadata header."""
from io import StringIO
from pathlib import Path
from typing import Dict, Union

import numpy as np
import pandas as pd

from imureg.utils.consts import HEADING_CORRECTED_ATTR, ORI_COLS, TIME_INDEX
from imureg.utils.datatype_helper import OrientationTable, get_sensor_names, is_orientation_table
from imureg.utils.exceptions import ValidationError

END_OF_HEADER = "endheader"


def _format_header_line(key, value) -> str:
    if not isinstance(key, str) or not key or "\n" in key or "=" in key:
        raise ValueError(f"Header keys must be non-empty strings without line breaks or '=': {key!r}")
    if key == HEADING_CORRECTED_ATTR:
        if not isinstance(value, (bool, np.bool_)):
            raise ValueError(f"The header entry '{key}' must be a bool, not {value!r}")
        value = bool(value)
    elif not isinstance(value, str):
        raise ValueError(f"The header entry '{key}' must be a string to survive reading the file, not {value!r}")
    text = str(value)
    if "\n" in text or "=" in text:
        raise ValueError(f"Header values must not contain line breaks or '=': {text!r}")
    return f"{key}={text}\n"


def _parse_header_value(key: str, value: str):
    if key == HEADING_CORRECTED_ATTR:
        if value not in ("True", "False"):
            raise ValidationError(f"Invalid value for '{key}' in the file header: {value!r}")
        return value == "True"
    return value


def save_orientation_table(data: OrientationTable, path: Union[str, Path]) -> None:
    """Write an orientation table to a text file.

    The file starts with one `key=value` line per entry in `data.attrs`, followed by a line `endheader`.
    The data follows as csv with one column per sensor axis named `<sensor>_<axis>` (e.g. `pelvis_imu_q_w`).

    Only string sensor names and string header entries (plus the boolean `heading_corrected` flag) survive a round
    trip through :func:`load_orientation_table`, so anything else is rejected with a ValueError before writing.
    """
    is_orientation_table(data, raise_exception=True)
    invalid_names = [s for s in get_sensor_names(data) if not isinstance(s, str) or "\n" in s]
    if invalid_names:
        raise ValueError(f"Sensor names must be strings without line breaks to be stored in a file: {invalid_names}")
    header = [_format_header_line(key, value) for key, value in data.attrs.items()]
    flat = pd.DataFrame(
        {f"{sensor}_{axis}": data[sensor][axis] for sensor in get_sensor_names(data) for axis in ORI_COLS},
        index=data.index,
    )
    flat.index.name = TIME_INDEX
    with Path(path).open("w", encoding="utf-8", newline="") as f:
        f.write(f"nColumns={len(flat.columns) + 1}\n")
        f.writelines(header)
        f.write(f"{END_OF_HEADER}\n")
        flat.to_csv(f)


def load_orientation_table(path: Union[str, Path]) -> OrientationTable:
    """Read an orientation table written by :func:`save_orientation_table`.

    The header entries are restored as `attrs` of the table.
    """
    lines = Path(path).read_text(encoding="utf-8").splitlines()
    try:
        header_end = lines.index(END_OF_HEADER)
    except ValueError as e:
        raise ValidationError(f"The file {path} has no '{END_OF_HEADER}' line.") from e

    attrs: Dict[str, object] = {}
    for line in lines[:header_end]:
        key, sep, value = line.partition("=")
        if not sep:
            raise ValidationError(f"Invalid line in the file header: {line!r}")
        if key == "nColumns":
            continue
        attrs[key] = _parse_header_value(key, value)
    flat = pd.read_csv(StringIO("\n".join(lines[header_end + 1 :])), index_col=0)

    sensors = {}
    for column in flat.columns:
        sensor, sep, axis = column.rpartition("_q_")
        if not sep or f"q_{axis}" not in ORI_COLS:
            raise ValidationError(f"The column '{column}' does not follow the `<sensor>_<q_w|q_x|q_y|q_z>` convention.")
        sensors.setdefault(sensor, {})[f"q_{axis}"] = flat[column]
    incomplete = [s for s, cols in sensors.items() if set(cols) != set(ORI_COLS)]
    if incomplete:
        raise ValidationError(f"The sensor(s) {incomplete} do not have all quaternion columns {ORI_COLS}.")
    table = pd.concat({s: pd.DataFrame(cols)[ORI_COLS] for s, cols in sensors.items()}, axis=1)
    table.index.name = TIME_INDEX
    table.attrs = attrs
    is_orientation_table(table, raise_exception=True)
    return table
