"""Marshalling between host values and :class:`PointObject` payloads."""

from __future__ import annotations

import numbers
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np

from annkit.errors import DataFormatError, UnsupportedTypeError
from annkit.index.types import DataType, DistType, PointObject

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1

DataReader = Callable[[Any, int, DistType], PointObject]
DataWriter = Callable[[PointObject], Any]


@dataclass(frozen=True, slots=True)
class DataCodec:
    """Reader/writer pair for one data type. ``None`` marks an absent half."""

    data_type: DataType
    reader: DataReader | None
    writer: DataWriter | None


def check_point_id(point_id: Any) -> int:
    if isinstance(point_id, bool) or not isinstance(point_id, numbers.Integral):
        raise DataFormatError(f"Point id must be an integer, got {type(point_id).__name__}")
    value = int(point_id)
    if not INT32_MIN <= value <= INT32_MAX:
        raise DataFormatError(
            f"Point id {value} is outside the 32-bit range [{INT32_MIN}, {INT32_MAX}]"
        )
    return value


def _vector_elements(data: Any) -> Sequence[Any]:
    if isinstance(data, np.ndarray):
        if data.ndim != 1:
            raise DataFormatError(f"Vector must be 1-dimensional; received shape {data.shape}")
        if not (np.issubdtype(data.dtype, np.floating) or np.issubdtype(data.dtype, np.integer)):
            raise DataFormatError(f"Vector must hold numbers; received dtype {data.dtype}")
        return data.tolist()
    if isinstance(data, (list, tuple)):
        return data
    raise DataFormatError(
        f"Expected a vector (list, tuple or 1-D array), got {type(data).__name__}"
    )


def _numeric_values(elements: Sequence[Any], label: str) -> list[float]:
    values: list[float] = []
    for position, element in enumerate(elements):
        if isinstance(element, bool) or not isinstance(element, numbers.Real):
            raise DataFormatError(f"{label} #{position} is not a number: {element!r}")
        values.append(float(element))
    return values


def read_vector(data: Any, point_id: int, dist_type: DistType = DistType.FLOAT) -> PointObject:
    """Convert a flat numeric sequence into a float32 point.

    Nothing is produced unless every element converts.
    """
    if dist_type != DistType.FLOAT:
        raise UnsupportedTypeError(
            f"Vector points require distance type FLOAT, got dist type - {int(dist_type)}"
        )
    elements = _vector_elements(data)
    if len(elements) == 0:
        raise DataFormatError("Vector must contain at least one element")

    array = np.asarray(_numeric_values(elements, "Vector element"), dtype=np.float32)
    return PointObject(id=check_point_id(point_id), raw_bytes=array.tobytes())


def write_vector(point: PointObject) -> list[float]:
    return point.as_array().tolist()


_CODECS: dict[DataType, DataCodec] = {
    DataType.VECTOR: DataCodec(DataType.VECTOR, reader=read_vector, writer=write_vector),
    DataType.STRING: DataCodec(DataType.STRING, reader=None, writer=None),
}


def get_codec(data_type: DataType | int) -> DataCodec:
    try:
        return _CODECS[DataType(data_type)]
    except (ValueError, KeyError) as exc:
        raise UnsupportedTypeError(f"Unknown data type - {data_type}") from exc


def get_reader(data_type: DataType | int) -> DataReader:
    codec = get_codec(data_type)
    if codec.reader is None:
        raise UnsupportedTypeError(
            f"Data type {codec.data_type.name} has no reader; only VECTOR data is supported"
        )
    return codec.reader


def get_writer(data_type: DataType | int) -> DataWriter:
    codec = get_codec(data_type)
    if codec.writer is None:
        raise UnsupportedTypeError(
            f"Data type {codec.data_type.name} has no writer; only VECTOR data is supported"
        )
    return codec.writer


def as_float_matrix(data: Any, *, what: str = "data") -> np.ndarray:
    """Validate a 2-D row-major float32 matrix.

    Numpy arrays must already be float32 and C-ordered; transposed or
    Fortran-ordered input is rejected rather than copied. Nested Python
    lists have no layout and are converted.
    """
    if isinstance(data, np.ndarray):
        if data.ndim != 2:
            raise DataFormatError(
                f"{what} should be a 2-dimensional float32 matrix; received {data.ndim} dimension(s)"
            )
        if data.dtype != np.float32:
            raise DataFormatError(
                f"{what} should be a 2-dimensional float32 matrix; received dtype {data.dtype}"
            )
        if not data.flags.c_contiguous:
            raise DataFormatError(f"the order of {what} should be C not FORTRAN")
        return data

    if not isinstance(data, (list, tuple)):
        raise DataFormatError(
            f"{what} should be a 2-dimensional float32 matrix, got {type(data).__name__}"
        )
    if len(data) == 0:
        return np.empty((0, 0), dtype=np.float32)
    rows: list[list[float]] = []
    for row_number, row in enumerate(data):
        try:
            elements = _vector_elements(row)
        except DataFormatError as exc:
            raise DataFormatError(f"{what} row #{row_number}: {exc}") from exc
        rows.append(_numeric_values(elements, f"{what} row #{row_number} element"))
        if len(rows[-1]) != len(rows[0]):
            raise DataFormatError(
                f"{what} rows must be equal-length numeric sequences; row #{row_number} has "
                f"{len(rows[-1])} elements, row #0 has {len(rows[0])}"
            )
    return np.asarray(rows, dtype=np.float32).reshape(len(rows), len(rows[0]))


def as_id_vector(ids: Any) -> np.ndarray:
    if isinstance(ids, np.ndarray):
        if ids.ndim != 1 or ids.dtype != np.int32:
            raise DataFormatError(
                f"ids should be 1 dimensional int32 vector; received shape {ids.shape} "
                f"dtype {ids.dtype}"
            )
        return ids
    if not isinstance(ids, (list, tuple)):
        raise DataFormatError(f"ids should be a sequence of integers, got {type(ids).__name__}")
    return np.asarray([check_point_id(value) for value in ids], dtype=np.int32)


def read_matrix(ids: Any, data: Any) -> list[PointObject]:
    """Turn a parallel id vector and float32 matrix into points, in row order.

    Validation covers the whole input before any point is returned.
    """
    id_vector = as_id_vector(ids)
    matrix = as_float_matrix(data)
    num_vec = matrix.shape[0]
    if num_vec != id_vector.shape[0]:
        raise DataFormatError(
            f"ids contains {id_vector.shape[0]} elements whereas data contains {num_vec} elements"
        )
    if num_vec and matrix.shape[1] == 0:
        raise DataFormatError("data rows must contain at least one element")
    return list(_iter_rows(id_vector, matrix))


def read_query_matrix(data: Any) -> list[PointObject]:
    """Marshal a 2-D query matrix; every query point gets id 0."""
    matrix = as_float_matrix(data, what="query")
    if matrix.shape[0] and matrix.shape[1] == 0:
        raise DataFormatError("query rows must contain at least one element")
    return list(_iter_rows(np.zeros(matrix.shape[0], dtype=np.int32), matrix))


def _iter_rows(ids: np.ndarray, matrix: np.ndarray) -> Iterator[PointObject]:
    for row_id, row in zip(ids.tolist(), matrix, strict=True):
        yield PointObject(id=int(row_id), raw_bytes=row.tobytes())
