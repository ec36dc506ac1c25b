"""Tests for the index handle lifecycle."""

from pathlib import Path

import numpy as np
import pytest

from annkit.errors import (
    BuildError,
    ConfigurationError,
    DataFormatError,
    IndexFormatError,
    IndexIOError,
    IndexOutOfRangeError,
    InvalidHandleError,
    NotBuiltError,
    UnsupportedTypeError,
)
from annkit.index.handle import FloatIndexHandle, IndexHandle, create_handle
from annkit.index.types import DataType, DistType


def _l2_brute_force(**kwargs) -> IndexHandle:
    return create_handle("l2", [], "brute_force", **kwargs)


def _exact_knn(vectors: np.ndarray, ids: np.ndarray, query: np.ndarray, k: int) -> list[int]:
    dists = np.linalg.norm(vectors - query, axis=1)
    return ids[np.argsort(dists, kind="stable")[:k]].tolist()


class TestCreateHandle:
    def test_float_vector_handle(self):
        handle = create_handle("l2", [], "brute_force", DataType.VECTOR, DistType.FLOAT)
        assert isinstance(handle, FloatIndexHandle)
        assert handle.get_data_point_qty() == 0
        assert not handle.is_built

    def test_raw_enum_values_are_accepted(self):
        handle = create_handle("l2", [], "brute_force", 1, 4)
        assert handle.data_type is DataType.VECTOR

    def test_int_distance_type_is_rejected(self):
        with pytest.raises(UnsupportedTypeError, match="optimized for vectors"):
            create_handle("l2", [], "brute_force", DataType.VECTOR, DistType.INT)

    def test_unknown_distance_type(self):
        with pytest.raises(UnsupportedTypeError, match="unknown dist type"):
            create_handle("l2", [], "brute_force", DataType.VECTOR, 9)

    def test_unknown_data_type(self):
        with pytest.raises(UnsupportedTypeError, match="unknown data type"):
            create_handle("l2", [], "brute_force", 7, DistType.FLOAT)

    def test_unknown_space(self):
        with pytest.raises(ConfigurationError):
            create_handle("nope", [], "brute_force")

    def test_bad_space_params(self):
        with pytest.raises(ConfigurationError):
            create_handle("lp", ["p=abc"], "brute_force")

    def test_unknown_method(self):
        with pytest.raises(ConfigurationError, match="Unknown method"):
            create_handle("l2", [], "kd_tree")

    def test_space_descriptor_is_recorded(self):
        handle = create_handle("lp", ["p=3"], "brute_force")
        assert handle.descriptor.space_type == "lp"
        assert handle.descriptor.space_params == ("p=3",)


class TestPopulation:
    def test_add_and_get_round_trip(self):
        handle = _l2_brute_force()
        vectors = [[0.1, 0.2, 0.3], [1.0, -2.0, 3.5]]
        for point_id, vector in zip([42, 7], vectors):
            handle.add_data_point(point_id, vector)

        assert handle.get_data_point_qty() == 2
        for position, vector in enumerate(vectors):
            assert handle.get_data_point(position) == pytest.approx(vector)
        assert handle.point_ids() == [42, 7]

    def test_failed_add_leaves_collection_untouched(self):
        handle = _l2_brute_force()
        handle.add_data_point(0, [1.0, 2.0])
        with pytest.raises(DataFormatError):
            handle.add_data_point(1, [1.0, "two"])
        assert handle.get_data_point_qty() == 1

    def test_batch_add_increases_quantity(self, corpus):
        ids, vectors = corpus
        handle = _l2_brute_force()
        handle.add_data_point(-1, [0.0] * 8)

        added = handle.add_data_point_batch(ids, vectors)

        assert added == len(ids)
        assert handle.get_data_point_qty() == 1 + len(ids)
        assert handle.get_data_point(1) == pytest.approx(vectors[0].tolist())
        assert handle.point_ids()[1:] == ids.tolist()

    def test_batch_add_mismatch_is_atomic(self):
        handle = _l2_brute_force()
        with pytest.raises(DataFormatError):
            handle.add_data_point_batch(
                np.array([0, 1, 2], dtype=np.int32), np.zeros((2, 3), dtype=np.float32)
            )
        assert handle.get_data_point_qty() == 0

    def test_batch_add_rejects_what_single_add_rejects(self):
        handle = _l2_brute_force()
        for rows in ([["1.5", "2"]], [[True, False]]):
            with pytest.raises(DataFormatError):
                handle.add_data_point(0, rows[0])
            with pytest.raises(DataFormatError):
                handle.add_data_point_batch([0], rows)
        assert handle.get_data_point_qty() == 0

    def test_batch_add_rejects_column_major(self):
        handle = _l2_brute_force()
        data = np.asfortranarray(np.arange(6, dtype=np.float32).reshape(3, 2))
        with pytest.raises(DataFormatError):
            handle.add_data_point_batch(np.arange(3, dtype=np.int32), data)
        assert handle.get_data_point_qty() == 0

    @pytest.mark.parametrize("position", [-1, 2, 100])
    def test_get_data_point_out_of_range_reports_bound(self, position):
        handle = _l2_brute_force()
        handle.add_data_point(0, [1.0])
        handle.add_data_point(1, [2.0])
        with pytest.raises(IndexOutOfRangeError, match=">= 0 & < 2"):
            handle.get_data_point(position)

    def test_out_of_range_is_an_index_error(self):
        with pytest.raises(IndexError):
            _l2_brute_force().get_data_point(0)


class TestStringDataType:
    def test_inserts_and_queries_are_unsupported(self):
        handle = create_handle("l2", [], "brute_force", DataType.STRING, DistType.FLOAT)
        with pytest.raises(UnsupportedTypeError):
            handle.add_data_point(0, [1.0, 2.0])
        with pytest.raises(UnsupportedTypeError):
            handle.add_data_point_batch([0], [[1.0, 2.0]])
        with pytest.raises(UnsupportedTypeError):
            handle.knn_query(1, [1.0, 2.0])
        with pytest.raises(UnsupportedTypeError):
            handle.read_queries([[1.0, 2.0]])


class TestBuildAndQuery:
    def test_scenario_nearest_of_two_ties(self):
        handle = _l2_brute_force()
        handle.add_data_point_batch(
            np.array([0, 1, 2], dtype=np.int32),
            np.array([[1, 0], [0, 1], [1, 1]], dtype=np.float32),
        )
        handle.create_index([])
        assert handle.knn_query(1, [0.0, 0.0]) in ([0], [1])

    def test_query_matches_exact_search(self, corpus, queries):
        ids, vectors = corpus
        handle = _l2_brute_force()
        handle.add_data_point_batch(ids, vectors)
        handle.create_index()

        for query in queries[:10]:
            result = handle.knn_query(5, query)
            assert result == _exact_knn(vectors, ids, query, 5)

    def test_results_are_bounded_unique_and_known(self, corpus):
        ids, vectors = corpus
        handle = create_handle("cosinesimil", [], "seq_search")
        handle.add_data_point_batch(ids, vectors)
        handle.create_index()

        result = handle.knn_query(15, vectors[3])
        assert len(result) == 15
        assert len(set(result)) == 15
        assert set(result) <= set(ids.tolist())
        assert result[0] == int(ids[3])

    def test_fewer_points_than_k(self):
        handle = _l2_brute_force()
        handle.add_data_point(5, [0.0])
        handle.add_data_point(6, [2.0])
        handle.create_index()
        assert handle.knn_query(10, [1.5]) == [6, 5]

    def test_query_before_build(self):
        handle = _l2_brute_force()
        handle.add_data_point(0, [1.0])
        with pytest.raises(NotBuiltError):
            handle.knn_query(1, [1.0])

    def test_k_must_be_positive(self):
        handle = _l2_brute_force()
        handle.add_data_point(0, [1.0])
        handle.create_index()
        with pytest.raises(ConfigurationError, match=r"k \(0\) should be >=1"):
            handle.knn_query(0, [1.0])

    def test_query_dimension_mismatch(self):
        handle = _l2_brute_force()
        handle.add_data_point(0, [1.0, 2.0])
        handle.create_index()
        with pytest.raises(DataFormatError, match="dimension"):
            handle.knn_query(1, [1.0, 2.0, 3.0])

    def test_points_added_after_build_are_invisible_until_rebuild(self):
        handle = _l2_brute_force()
        handle.add_data_point(0, [10.0])
        handle.create_index()
        handle.add_data_point(1, [0.0])

        assert handle.knn_query(1, [0.0]) == [0]
        handle.create_index()
        assert handle.knn_query(1, [0.0]) == [1]

    def test_rebuild_replaces_structure(self):
        handle = _l2_brute_force()
        handle.add_data_point(0, [0.0, 0.0])
        handle.create_index()
        first = handle._index
        handle.add_data_point(1, [1.0, 1.0])
        handle.create_index()
        assert handle._index is not first
        assert handle.knn_query(2, [1.0, 1.0]) == [1, 0]

    def test_empty_corpus_build_fails_but_handle_stays_usable(self):
        handle = _l2_brute_force()
        with pytest.raises(BuildError, match="empty"):
            handle.create_index()
        assert not handle.is_built
        handle.add_data_point(3, [1.0])
        handle.create_index()
        assert handle.knn_query(1, [0.0]) == [3]

    def test_mixed_dimensions_fail_build_keeping_points(self):
        handle = _l2_brute_force()
        handle.add_data_point(0, [1.0, 2.0])
        handle.create_index()
        handle.add_data_point(1, [1.0, 2.0, 3.0])

        with pytest.raises(BuildError, match="dimension"):
            handle.create_index()

        assert not handle.is_built
        assert handle.get_data_point_qty() == 2
        assert handle.get_data_point(1) == [1.0, 2.0, 3.0]

    def test_unknown_build_parameter(self):
        handle = _l2_brute_force()
        handle.add_data_point(0, [1.0])
        with pytest.raises(ConfigurationError, match="Unknown index parameter"):
            handle.create_index(["M=16"])

    def test_query_time_params_require_build(self):
        handle = _l2_brute_force()
        with pytest.raises(NotBuiltError):
            handle.set_query_time_params([])

    def test_brute_force_has_no_query_time_params(self):
        handle = _l2_brute_force()
        handle.add_data_point(0, [1.0])
        handle.create_index()
        handle.set_query_time_params([])
        with pytest.raises(ConfigurationError):
            handle.set_query_time_params(["ef=10"])


class TestPersistence:
    def _built(self, corpus) -> IndexHandle:
        ids, vectors = corpus
        handle = _l2_brute_force()
        handle.add_data_point_batch(ids, vectors)
        handle.create_index()
        return handle

    def test_save_requires_build(self, temp_dir: Path):
        with pytest.raises(NotBuiltError):
            _l2_brute_force().save_index(temp_dir / "x.idx")

    def test_save_then_load_into_repopulated_handle(self, corpus, queries, temp_dir: Path):
        ids, vectors = corpus
        path = temp_dir / "corpus.idx"
        original = self._built(corpus)
        original.save_index(path)
        expected = [original.knn_query(4, q) for q in queries[:5]]

        restored = _l2_brute_force()
        restored.add_data_point_batch(ids, vectors)
        restored.load_index(str(path))

        assert restored.is_built
        assert [restored.knn_query(4, q) for q in queries[:5]] == expected

    def test_load_missing_file(self, corpus, temp_dir: Path):
        handle = self._built(corpus)
        with pytest.raises(IndexIOError):
            handle.load_index(temp_dir / "missing.idx")
        assert not handle.is_built

    def test_load_corrupt_file(self, corpus, temp_dir: Path):
        path = temp_dir / "corrupt.idx"
        path.write_bytes(b"\x00\xffnot an index")
        handle = self._built(corpus)
        with pytest.raises(IndexFormatError):
            handle.load_index(path)

    def test_load_with_different_points(self, corpus, temp_dir: Path):
        path = temp_dir / "corpus.idx"
        self._built(corpus).save_index(path)

        handle = _l2_brute_force()
        handle.add_data_point(0, [1.0] * 8)
        with pytest.raises(IndexFormatError, match="holds 200 points"):
            handle.load_index(path)

    def test_load_with_different_space(self, corpus, temp_dir: Path):
        ids, vectors = corpus
        path = temp_dir / "corpus.idx"
        self._built(corpus).save_index(path)

        handle = create_handle("l1", [], "brute_force")
        handle.add_data_point_batch(ids, vectors)
        with pytest.raises(IndexFormatError, match="space"):
            handle.load_index(path)

    def test_save_to_unwritable_location(self, corpus, temp_dir: Path):
        handle = self._built(corpus)
        with pytest.raises(IndexIOError):
            handle.save_index(temp_dir / "no" / "such" / "dir" / "x.idx")


class TestFree:
    def test_operations_after_free_fail(self):
        handle = _l2_brute_force()
        handle.add_data_point(0, [1.0])
        handle.create_index()
        handle.free()

        assert handle.is_freed
        for call in (
            lambda: handle.add_data_point(1, [1.0]),
            lambda: handle.create_index(),
            lambda: handle.knn_query(1, [1.0]),
            lambda: handle.get_data_point_qty(),
            lambda: handle.get_data_point(0),
            handle.free,
        ):
            with pytest.raises(InvalidHandleError):
                call()
