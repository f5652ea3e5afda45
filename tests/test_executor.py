import pytest
pytest.importorskip("dask")
pytest.importorskip("distributed")
from src.distributed import executor


def test_create_local_client_uses_localcluster_and_client(monkeypatch):
    created = {}

    class DummyCluster:
        def __init__(self, n_workers, threads_per_worker, processes):
            created["n_workers"] = n_workers
            created["threads_per_worker"] = threads_per_worker
            created["processes"] = processes

    class DummyClient:
        def __init__(self, cluster):
            created["cluster"] = cluster

    monkeypatch.setattr(executor, "LocalCluster", DummyCluster)
    monkeypatch.setattr(executor, "Client", DummyClient)

    client = executor.create_local_client(n_workers=2, threads_per_worker=3)

    assert isinstance(client, DummyClient)
    assert created["n_workers"] == 2
    assert created["threads_per_worker"] == 3
    assert created["processes"] is False


def test_map_files_and_gather_keep_file_order():
    filenames = ["towers1.root", "towers2.root", "towers3.root"]
    config = {"selectors": ["CEMC_TOWER"]}

    def process_function(fname, cfg):
        # Stand-in for the real per-file jet-input task
        return fname, cfg["selectors"][0]

    tasks = executor.map_files(filenames, process_function, config)
    assert len(tasks) == len(filenames)

    results = executor.gather(tasks, scheduler="synchronous")
    assert results == [(f, "CEMC_TOWER") for f in filenames]


def test_gather_uses_client_when_given():
    calls = {}

    class DummyClient:
        def compute(self, tasks):
            calls["compute"] = tasks
            return ["future-a", "future-b"]

        def gather(self, futures):
            calls["gather"] = futures
            return ["a", "b"]

    out = executor.gather(["task-a", "task-b"], client=DummyClient())

    assert out == ["a", "b"]
    assert calls["compute"] == ["task-a", "task-b"]
    assert calls["gather"] == ["future-a", "future-b"]
