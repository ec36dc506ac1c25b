"""annkit - nearest-neighbour index handles over pluggable search engines.

Build, populate, persist and query k-NN indexes through integer handles,
with a parallel batch query engine.
"""

__version__ = "0.1.0"
__author__ = "annkit Contributors"

from annkit.api import (
    DataType,
    DistType,
    addDataPoint,
    addDataPointBatch,
    add_data_point,
    add_data_point_batch,
    create_index,
    createIndex,
    free_index,
    freeIndex,
    get_data_point,
    get_data_point_qty,
    getDataPoint,
    getDataPointQty,
    init,
    knn_query,
    knn_query_batch,
    knnQuery,
    knnQueryBatch,
    load_index,
    loadIndex,
    save_index,
    saveIndex,
    set_query_time_params,
    setQueryTimeParams,
)
from annkit.config import Settings, get_settings

__all__ = [
    "DataType",
    "DistType",
    "Settings",
    "__version__",
    "addDataPoint",
    "addDataPointBatch",
    "add_data_point",
    "add_data_point_batch",
    "createIndex",
    "create_index",
    "freeIndex",
    "free_index",
    "getDataPoint",
    "getDataPointQty",
    "get_data_point",
    "get_data_point_qty",
    "get_settings",
    "init",
    "knnQuery",
    "knnQueryBatch",
    "knn_query",
    "knn_query_batch",
    "loadIndex",
    "load_index",
    "saveIndex",
    "save_index",
    "setQueryTimeParams",
    "set_query_time_params",
]
