"""
Main entry point for building calorimeter tower jet inputs.

Reads tower, geometry and vertex products from ROOT files, builds the
vertex-corrected jet inputs of every configured tower source event by
event, and summarises them in histograms (jet-input eta per source,
per-event scalar pT sum) together with per-event totals.

Supports serial execution, local multi-process parallelism via
ProcessPoolExecutor, and a local Dask cluster.
"""

import argparse
import glob
import logging
import os
import time
import multiprocessing
from concurrent.futures import ProcessPoolExecutor, as_completed

import yaml
import numpy as np
import vector
import matplotlib.pyplot as plt
from hist import Hist
import hist

from src.jetinput import sources
from src.jetinput.assembler import TowerJetInput
from src.jetinput.errors import FatalJetInputError, UnknownSource
from src.jetinput.io import (
    VERTEX_BRANCH,
    event_stores,
    load_events,
    load_geometry,
    tower_branches,
)
from src.jetinput.physics import invariant_mass

logger = logging.getLogger(__name__)


# Argument parsing and config loading
def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Build vertex-corrected calorimeter tower jet inputs."
    )
    parser.add_argument(
        "--config",
        default="config/config.yaml",
        help="Path to YAML configuration file.",
    )
    parser.add_argument(
        "--n-workers",
        type=int,
        default=None,
        help="Number of worker processes for parallel file processing "
        "(overrides n_workers from the config, default 1).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v: INFO, -vv: DEBUG).",
    )
    return parser.parse_args(argv)


def load_config(path):
    with open(path) as f:
        return yaml.safe_load(f)


def resolve_n_workers(args, config):
    """Worker count: --n-workers when given, else the config value, else 1."""
    if args.n_workers is not None:
        return args.n_workers
    return config.get("n_workers", 1)


def configure_logging(verbose):
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(format="[%(levelname)s] %(name)s: %(message)s", level=level)


def parse_selectors(names):
    """
    Selectors from configuration names.

    Unrecognised names are kept as given: their builder produces no
    inputs instead of stopping the run.
    """
    selectors = []
    for name in names:
        try:
            selectors.append(sources.InputSelector.from_name(name))
        except UnknownSource:
            logger.warning("Unknown tower source %r, it will produce no inputs", name)
            selectors.append(name)
    return selectors


def make_histograms(config, source_names):
    hcfg = config["hist"]
    h_eta = Hist(
        hist.axis.StrCategory(source_names, name="source", label="Tower source"),
        hist.axis.Regular(
            hcfg["eta_nbins"],
            hcfg["eta_min"],
            hcfg["eta_max"],
            name="eta",
            label=r"Jet input $\eta$",
        ),
    )
    h_sum_pt = Hist(
        hist.axis.Regular(
            hcfg["et_nbins"],
            0.0,
            hcfg["et_max"],
            name="sum_pt",
            label=r"$\sum p_T$ [GeV]",
        )
    )
    return {"eta": h_eta, "sum_pt": h_sum_pt}


# Per-file processing
def process_file(filename, config):
    """
    Per-file jet-input building.

    Steps:
      1. Resolve container keys of every configured tower source.
      2. Load tower and vertex branches plus the geometry tables.
      3. For each event, build the jet inputs of every source.
      4. Fill eta per source and the per-event pT sum.
      5. Sum the event's jet inputs as four-vectors.
    """
    verbosity = config.get("verbosity", 0)
    selectors = parse_selectors(config["selectors"])
    builders = [TowerJetInput(sel, verbosity=verbosity) for sel in selectors]
    for builder in builders:
        logger.info(builder.identify())

    # 1) Container keys of the known sources
    tower_keys = []
    geometry_keys = []
    for sel in selectors:
        try:
            tower_key, geom_key = sources.resolve(sel)
        except UnknownSource:
            continue
        tower_keys.append(tower_key)
        geometry_keys.append(geom_key)

    # 2) Load events and geometry
    branches = [b for key in tower_keys for b in tower_branches(key)]
    branches.append(VERTEX_BRANCH)
    arrays = load_events(filename, branches)

    geometry_file = config.get("geometry_file") or filename
    geometries = {key: load_geometry(geometry_file, key) for key in set(geometry_keys)}

    source_names = [getattr(sel, "name", str(sel)) for sel in selectors]
    hists = make_histograms(config, source_names)

    n_events = 0
    n_inputs = 0
    n_empty_events = 0
    totals = {"E": [], "px": [], "py": [], "pz": []}
    sum_pt = []

    # 3) Event loop
    for store in event_stores(arrays, tower_keys, geometries):
        n_events += 1
        total = vector.obj(px=0.0, py=0.0, pz=0.0, E=0.0)
        event_pt = 0.0
        event_inputs = 0

        for name, builder in zip(source_names, builders):
            jets = builder.get_input(store)
            event_inputs += len(jets)

            # 4) Fill histograms
            if jets:
                hists["eta"].fill(
                    source=[name] * len(jets), eta=np.array([j.eta for j in jets])
                )

            # 5) Event four-vector sum
            for jet in jets:
                total = total + jet.to_vector()
                event_pt += jet.pt

        n_inputs += event_inputs
        if event_inputs == 0:
            n_empty_events += 1
            continue

        sum_pt.append(event_pt)
        totals["E"].append(total.E)
        totals["px"].append(total.px)
        totals["py"].append(total.py)
        totals["pz"].append(total.pz)

    sum_pt = np.array(sum_pt, dtype=float)
    if sum_pt.size > 0:
        hists["sum_pt"].fill(sum_pt=sum_pt)
        mass = np.asarray(
            invariant_mass(*(np.array(totals[k], dtype=float) for k in ("E", "px", "py", "pz"))),
            dtype=float,
        )
    else:
        mass = np.array([], dtype=float)

    info = {
        "filename": filename,
        "n_events": n_events,
        "n_inputs": n_inputs,
        "n_empty_events": n_empty_events,
        "sum_pt_GeV": sum_pt,
        "mass_GeV": mass,
    }

    return hists, info


def safe_process_file(fname, config):
    """
    Wrapper so that a bad file doesn't kill the whole job.

    Pipeline misconfiguration still stops the run.
    """
    try:
        return process_file(fname, config)
    except FatalJetInputError:
        raise
    except Exception as e:
        print(f"[WARN] Error in file {fname}: {e}")
        return None


def run_files(files, config, n_workers, use_dask=False):
    """
    Process files serially, with a process pool, or on a local Dask cluster.
    Returns the list of successful (hists, info) results.
    """
    results = []

    if use_dask:
        from src.distributed.executor import create_local_client, gather, map_files

        client = create_local_client(n_workers=n_workers)
        try:
            tasks = map_files(files, safe_process_file, config)
            outs = gather(tasks, client=client)
        finally:
            client.close()
        for fname, out in zip(files, outs):
            if out is not None:
                results.append(out)
            print(f"Completed {fname}")
        return results

    # Serial path for N=1: avoids multiprocessing overhead
    if n_workers == 1:
        for i, fname in enumerate(files, start=1):
            out = safe_process_file(fname, config)
            if out is not None:
                results.append(out)
            print(f"[{i}/{len(files)}] Completed {fname}")
        return results

    # Multi-process path
    with ProcessPoolExecutor(max_workers=n_workers) as pool:
        future_to_file = {
            pool.submit(safe_process_file, fname, config): fname for fname in files
        }
        for i, future in enumerate(as_completed(future_to_file), start=1):
            fname = future_to_file[future]
            try:
                out = future.result()
            except FatalJetInputError:
                raise
            except Exception as e:
                print(f"[ERROR] {fname}: {e}")
                continue
            if out is not None:
                results.append(out)
            print(f"[{i}/{len(files)}] Completed {fname}")
    return results


def merge_results(results):
    """
    Merge per-file histograms bin-by-bin and concatenate per-event arrays.
    """
    if not results:
        raise RuntimeError("No successful per-file results; nothing to merge.")

    hists, infos = zip(*results)

    merged = {}
    for name in hists[0]:
        total = hists[0][name].copy()
        for h in hists[1:]:
            total += h[name]
        merged[name] = total

    def concat_from_infos(key):
        arrays = [info[key] for info in infos if info[key].size > 0]
        if arrays:
            return np.concatenate(arrays)
        return np.array([], dtype=float)

    summary = {
        "n_files": len(infos),
        "n_events": sum(info["n_events"] for info in infos),
        "n_inputs": sum(info["n_inputs"] for info in infos),
        "n_empty_events": sum(info["n_empty_events"] for info in infos),
        "sum_pt_GeV": concat_from_infos("sum_pt_GeV"),
        "mass_GeV": concat_from_infos("mass_GeV"),
    }
    return merged, summary


def plot_histograms(merged, summary, outdir):
    h_eta = merged["eta"]

    # eta per tower source
    fig, ax = plt.subplots()
    edges = h_eta.axes["eta"].edges
    for name in h_eta.axes["source"]:
        counts = h_eta[hist.loc(name), :].values()
        ax.step(edges[:-1], counts, where="post", label=name)
    ax.set_xlabel(r"Jet input $\eta$")
    ax.set_ylabel("Jet inputs")
    ax.set_title("Vertex-corrected tower pseudorapidity")
    ax.legend(loc="best", frameon=False)
    fig.tight_layout()
    fig.savefig(os.path.join(outdir, "jet_input_eta.png"))
    plt.close(fig)

    # per-event pT sum with Poisson errors
    h_pt = merged["sum_pt"]
    counts = h_pt.values()
    edges = h_pt.axes[0].edges
    centers = 0.5 * (edges[:-1] + edges[1:])
    fig, ax = plt.subplots()
    ax.step(edges[:-1], counts, where="post", label="Events")
    ax.errorbar(
        centers,
        counts,
        yerr=np.sqrt(counts),
        fmt=".",
        markersize=2,
        linewidth=0.5,
        label="Statistical errors",
    )
    ax.set_xlabel(r"$\sum p_T$ [GeV]")
    ax.set_ylabel("Events")
    ax.set_title("Scalar pT sum of tower jet inputs")
    ax.legend(loc="best", frameon=False)
    fig.tight_layout()
    fig.savefig(os.path.join(outdir, "sum_pt.png"))
    plt.close(fig)

    # summed four-vector mass
    if summary["mass_GeV"].size > 0:
        fig, ax = plt.subplots()
        ax.hist(summary["mass_GeV"], bins=50, histtype="step")
        ax.set_xlabel("Summed jet-input mass [GeV]")
        ax.set_ylabel("Events")
        ax.set_title("Invariant mass of all jet inputs per event")
        fig.tight_layout()
        fig.savefig(os.path.join(outdir, "event_mass.png"))
        plt.close(fig)


def main(argv=None):
    args = parse_args(argv)
    configure_logging(args.verbose)
    config = load_config(args.config)

    pattern = os.path.join(config["data_dir"], config["file_pattern"])
    files = sorted(glob.glob(pattern))

    if not files:
        raise RuntimeError(f"No input files found for pattern {pattern}")

    print(f"Found {len(files)} input files.")

    analysis_cfg = config.get("analysis", {})
    make_plots = analysis_cfg.get("make_plots", True)
    use_dask = analysis_cfg.get("use_dask", False)

    # Decide how many workers to use
    n_workers = resolve_n_workers(args, config)
    max_procs = multiprocessing.cpu_count() or 1
    if n_workers > max_procs:
        print(
            f"[INFO] Requested {n_workers} workers but only {max_procs} cores available; "
            f"using {max_procs}."
        )
        n_workers = max_procs

    print(f"Using {n_workers} worker(s).")

    start_time = time.perf_counter()
    results = run_files(files, config, n_workers, use_dask=use_dask)
    wall_time = time.perf_counter() - start_time

    merged, summary = merge_results(results)

    outdir = config["output_dir"]
    os.makedirs(outdir, exist_ok=True)

    np.save(os.path.join(outdir, "eta_counts.npy"), merged["eta"].values())
    np.save(os.path.join(outdir, "eta_edges.npy"), merged["eta"].axes["eta"].edges)
    np.save(os.path.join(outdir, "sum_pt_GeV.npy"), summary["sum_pt_GeV"])
    np.save(os.path.join(outdir, "mass_GeV.npy"), summary["mass_GeV"])

    if make_plots:
        plot_histograms(merged, summary, outdir)

    # Final summary
    print(f"Processed {summary['n_files']} files.")
    print(f"Events: {summary['n_events']} ({summary['n_empty_events']} without inputs)")
    print(f"Jet inputs: {summary['n_inputs']}")
    if summary["sum_pt_GeV"].size > 0:
        print(f"<sum pT> = {summary['sum_pt_GeV'].mean():.2f} GeV")
    print(f"Total wall time: {wall_time:.2f} s")
    if wall_time > 0:
        print(f"Average processing rate: {summary['n_events'] / wall_time:.1f} events/s")
    print(f"Saved outputs to {outdir}")


if __name__ == "__main__":
    main()
