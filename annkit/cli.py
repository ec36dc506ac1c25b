"""annkit CLI application with Typer."""

import logging
import time
from pathlib import Path
from typing import Annotated

import numpy as np
import typer

from annkit import __version__
from annkit.app.adapters.hnsw import hnswlib_available
from annkit.bootstrap import ApplicationContainer, bootstrap_application
from annkit.config import get_settings
from annkit.errors import AnnkitError, DataFormatError
from annkit.index.codec import INT32_MAX, INT32_MIN
from annkit.index.factory import registered_methods, registered_spaces
from annkit.index.handle import IndexHandle, create_handle
from annkit.utils.cli_output import json_response

app = typer.Typer(
    name="annkit",
    help="Build, persist and query nearest-neighbour indexes",
    add_completion=True,
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"annkit version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", callback=version_callback, is_eager=True, help="Show version"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log at DEBUG level"),
    ] = False,
) -> None:
    """annkit command line interface."""
    level = "DEBUG" if verbose else get_settings().log_level
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _fail(message: str, code: int) -> typer.Exit:
    typer.secho(f"Error: {message}", fg=typer.colors.RED, err=True)
    return typer.Exit(code=code)


def _load_array(path: Path, what: str) -> np.ndarray:
    if not path.exists():
        raise _fail(f"{what} file not found: {path}", 1)
    try:
        return np.load(path, allow_pickle=False)
    except (OSError, ValueError) as exc:
        raise _fail(f"Cannot read {what} file {path}: {exc}", 1) from exc


def _int32_ids(ids: np.ndarray) -> np.ndarray:
    if ids.ndim != 1 or not np.issubdtype(ids.dtype, np.integer):
        raise DataFormatError(
            f"ids file should hold a 1-D integer vector; received shape {ids.shape} dtype {ids.dtype}"
        )
    if ids.size and (int(ids.min()) < INT32_MIN or int(ids.max()) > INT32_MAX):
        raise DataFormatError(
            f"ids file holds values outside the 32-bit range [{INT32_MIN}, {INT32_MAX}]"
        )
    return ids.astype(np.int32)


def _populate(
    container: ApplicationContainer,
    vectors_path: Path,
    ids_path: Path | None,
    space: str,
    space_params: list[str] | None,
    method: str,
) -> IndexHandle:
    vectors = np.ascontiguousarray(_load_array(vectors_path, "vectors"), dtype=np.float32)
    if ids_path is not None:
        ids = _int32_ids(_load_array(ids_path, "ids"))
    else:
        ids = np.arange(vectors.shape[0], dtype=np.int32)

    handle = create_handle(
        space,
        space_params or [],
        method,
        print_progress=container.settings.print_progress,
    )
    handle.add_data_point_batch(ids, vectors)
    return handle


SpaceOption = Annotated[str, typer.Option("--space", help="Distance space")]
SpaceParamOption = Annotated[
    list[str] | None,
    typer.Option("--space-param", help="Space parameter as key=value (repeatable)"),
]
MethodOption = Annotated[str, typer.Option("--method", help="Index method")]
IdsOption = Annotated[
    Path | None,
    typer.Option("--ids", help="int32 .npy vector of point ids (defaults to row numbers)"),
]


@app.command("build")
def build(
    vectors: Annotated[Path, typer.Argument(help="float32 .npy matrix, one vector per row")],
    index_path: Annotated[
        Path | None,
        typer.Argument(help="Where to save the index (defaults to the data directory)"),
    ] = None,
    ids: IdsOption = None,
    space: SpaceOption = "l2",
    space_param: SpaceParamOption = None,
    method: MethodOption = "brute_force",
    param: Annotated[
        list[str] | None,
        typer.Option("--param", help="Index build parameter as key=value (repeatable)"),
    ] = None,
) -> None:
    """Build an index from a vectors file and save it."""
    container = bootstrap_application()
    target = index_path or container.settings.get_index_dir() / f"{vectors.stem}.{method}.idx"
    target.parent.mkdir(parents=True, exist_ok=True)

    try:
        handle = _populate(container, vectors, ids, space, space_param, method)
        start = time.perf_counter()
        handle.create_index(param or [])
        elapsed = time.perf_counter() - start
        handle.save_index(target)
        qty = handle.get_data_point_qty()
        handle.free()
    except AnnkitError as exc:
        raise _fail(str(exc), 2) from exc
    finally:
        container.close()

    typer.secho(
        f"Indexed {qty} points with {method}/{space} in {elapsed:.2f}s",
        fg=typer.colors.GREEN,
    )
    typer.secho(f"Index stored at {target}", fg=typer.colors.BLUE)


@app.command("query")
def query(
    vectors: Annotated[Path, typer.Argument(help="The vectors file the index was built from")],
    index_path: Annotated[Path, typer.Argument(help="Saved index")],
    queries: Annotated[Path, typer.Argument(help="float32 .npy matrix of query vectors")],
    k: Annotated[int, typer.Option("-k", help="Neighbours per query", min=1)] = 10,
    workers: Annotated[
        int | None,
        typer.Option("--workers", help="Worker threads (defaults to ANNKIT_DEFAULT_BATCH_WORKERS)"),
    ] = None,
    ids: IdsOption = None,
    space: SpaceOption = "l2",
    space_param: SpaceParamOption = None,
    method: MethodOption = "brute_force",
    query_param: Annotated[
        list[str] | None,
        typer.Option("--query-param", help="Query-time parameter as key=value (repeatable)"),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output results as JSON"),
    ] = False,
) -> None:
    """Load a saved index and answer a batch of queries."""
    container = bootstrap_application()

    try:
        query_matrix = np.ascontiguousarray(_load_array(queries, "queries"), dtype=np.float32)
        handle = _populate(container, vectors, ids, space, space_param, method)
        handle.load_index(index_path)
        if query_param:
            handle.set_query_time_params(query_param)
        start = time.perf_counter()
        results = container.batch_engine.query_batch(handle, workers, k, query_matrix)
        elapsed = time.perf_counter() - start
        handle.free()
    except AnnkitError as exc:
        raise _fail(str(exc), 2) from exc
    finally:
        container.close()

    if json_output:
        typer.echo(
            json_response(
                "knn_results",
                1,
                index=str(index_path),
                method=method,
                space=space,
                k=k,
                results=results,
            )
        )
        return

    for position, neighbours in enumerate(results):
        typer.echo(f"{position}: {' '.join(str(i) for i in neighbours)}")
    typer.secho(
        f"{len(results)} queries answered in {elapsed:.3f}s",
        fg=typer.colors.BLUE,
        err=True,
    )


@app.command("info")
def info(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output results as JSON"),
    ] = False,
) -> None:
    """Show registered spaces and methods."""
    settings = get_settings()
    hnsw_ok = hnswlib_available()

    if json_output:
        typer.echo(
            json_response(
                "annkit_info",
                1,
                version=__version__,
                spaces=registered_spaces(),
                methods=registered_methods(),
                hnswlib=hnsw_ok,
                default_batch_workers=settings.default_batch_workers,
                max_batch_workers=settings.max_batch_workers,
            )
        )
        return

    typer.secho(f"annkit {__version__}", fg=typer.colors.CYAN, bold=True)
    typer.echo(f"  Spaces:  {', '.join(registered_spaces())}")
    typer.echo(f"  Methods: {', '.join(registered_methods())}")
    if hnsw_ok:
        typer.secho("  hnswlib: available", fg=typer.colors.GREEN)
    else:
        typer.secho(
            "  hnswlib: not installed (the 'hnsw' method is unavailable)",
            fg=typer.colors.YELLOW,
        )
    typer.echo(
        f"  Batch workers: default {settings.default_batch_workers}, "
        f"cap {settings.max_batch_workers}"
    )


if __name__ == "__main__":
    app()
