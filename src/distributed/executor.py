"""
Dask-based execution helpers

This module hides the details of starting a local Dask cluster
and running the per-file jet-input task on it.
"""

import dask
from dask.distributed import Client, LocalCluster
from dask import delayed


def create_local_client(n_workers=4, threads_per_worker=1):
    """
    Create a local Dask client with a LocalCluster.

    Parameters
    ----------
    n_workers : int
        Number of workers to start.
    threads_per_worker : int
        Number of threads per worker.

    Returns
    -------
    dask.distributed.Client
        Connected Dask client.
    """
    cluster = LocalCluster(
        n_workers=n_workers,
        threads_per_worker=threads_per_worker,
        processes=False,
    )
    client = Client(cluster)
    return client


def map_files(filenames, process_function, config):
    """
    Wrap a per-file function into one Dask delayed task per file.

    Parameters
    ----------
    filenames : list of str
        ROOT files holding tower events.
    process_function : callable
        process_function(filename, config) -> (histograms, info) or None.
    config : dict
        Driver configuration passed to every task.

    Returns
    -------
    list of delayed objects, in the order of filenames.
    """
    return [delayed(process_function)(filename, config) for filename in filenames]


def gather(tasks, client=None, scheduler=None):
    """
    Compute delayed tasks and return their results in task order.

    Uses the client when given, otherwise dask.compute with the
    requested scheduler ("synchronous", "threads", ...).
    """
    if client is not None:
        futures = client.compute(tasks)
        return client.gather(futures)
    return list(dask.compute(*tasks, scheduler=scheduler))
