"""
Unit tests for storage modules.

Tests for cluster_storage and QTMiner save/load.
"""

import pickle
from pathlib import Path

import pytest

from qtminer.core.cluster_set import ClusterOrdering
from qtminer.core.qt_miner import QTMiner
from qtminer.storage.cluster_storage import (
    FORMAT_VERSION,
    build_output_path,
    load_clusters,
    save_clusters,
)
from qtminer.utils.error_handling import ClusterDecodeError, ClusteringError


@pytest.fixture
def mined(discrete_data):
    miner = QTMiner(1.0)
    miner.compute(discrete_data)
    return miner


@pytest.mark.unit
class TestClusterStorage:
    """Test cluster file persistence."""

    def test_save_and_load(self, tmp_path, mined):
        path = save_clusters(tmp_path / "run.dmp", mined.get_cluster_set(), radius=1.0)
        cluster_set, radius = load_clusters(path)

        assert cluster_set == mined.get_cluster_set()
        assert radius == 1.0
        assert cluster_set.ordering is ClusterOrdering.CENTROID

    def test_creates_parent_directories(self, tmp_path, mined):
        path = tmp_path / "nested" / "dir" / "run.dmp"
        save_clusters(path, mined.get_cluster_set())
        assert path.exists()

    def test_payload_format(self, tmp_path, mined):
        path = save_clusters(tmp_path / "run.dmp", mined.get_cluster_set(), radius=1.0)
        with open(path, "rb") as f:
            payload = pickle.load(f)

        assert payload["format_version"] == FORMAT_VERSION
        assert payload["radius"] == 1.0
        assert payload["ordering"] == "centroid"
        assert [members for _, members in payload["clusters"]] == [[0, 1, 2], [3, 4, 5]]

    def test_save_none(self, tmp_path):
        with pytest.raises(ValueError):
            save_clusters(tmp_path / "run.dmp", None)

    def test_missing_file_raises_os_error(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_clusters(tmp_path / "missing.dmp")

    def test_directory_raises_os_error(self, tmp_path):
        with pytest.raises(OSError):
            load_clusters(tmp_path)

    @pytest.mark.parametrize("content", [b"", b"not a pickle", b"\x80\x04\x95"])
    def test_corrupt_file_raises_decode_error(self, tmp_path, content):
        path = tmp_path / "bad.dmp"
        path.write_bytes(content)
        with pytest.raises(ClusterDecodeError) as exc_info:
            load_clusters(path)
        assert not isinstance(exc_info.value, ClusteringError)

    @pytest.mark.parametrize(
        "payload",
        [
            ["not", "a", "dict"],
            {"format_version": 99, "clusters": []},
            {"format_version": FORMAT_VERSION, "ordering": "weird", "clusters": []},
            {"format_version": FORMAT_VERSION, "clusters": [("centroid", [0])]},
            {"format_version": FORMAT_VERSION, "clusters": [42]},
            {"format_version": FORMAT_VERSION, "radius": "big", "clusters": []},
        ],
    )
    def test_invalid_payload_raises_decode_error(self, tmp_path, payload):
        path = tmp_path / "bad.dmp"
        with open(path, "wb") as f:
            pickle.dump(payload, f)
        with pytest.raises(ClusterDecodeError):
            load_clusters(path)

    def test_build_output_path(self):
        assert build_output_path("out", "playtennis", 0.5) == Path("out") / "playtennis_0.5.dmp"
        assert build_output_path("out", "t", 2, extension="bin") == Path("out") / "t_2.bin"


@pytest.mark.unit
class TestMinerPersistence:
    """Test QTMiner.save / QTMiner.load."""

    def test_round_trip(self, tmp_path, mined, discrete_data):
        path = mined.save(tmp_path / "miner.dmp")
        loaded = QTMiner.load(path)

        assert loaded.radius == mined.radius
        assert loaded.ordering is mined.ordering
        assert loaded.get_cluster_set() == mined.get_cluster_set()
        assert loaded.get_cluster_set().render(discrete_data) == mined.get_cluster_set().render(discrete_data)

    def test_size_ordering_survives(self, tmp_path, discrete_data):
        miner = QTMiner(1.0, ordering=ClusterOrdering.SIZE)
        miner.compute(discrete_data)
        loaded = QTMiner.load(miner.save(tmp_path / "size.dmp"))
        assert loaded.ordering is ClusterOrdering.SIZE

    def test_load_without_radius(self, tmp_path, mined):
        path = save_clusters(tmp_path / "noradius.dmp", mined.get_cluster_set())
        with pytest.raises(ClusterDecodeError):
            QTMiner.load(path)

    def test_save_empty_miner(self, tmp_path):
        miner = QTMiner(0.3)
        loaded = QTMiner.load(miner.save(tmp_path / "empty.dmp"))
        assert len(loaded.get_cluster_set()) == 0
        assert loaded.radius == 0.3
