"""CLI interface for LiveDB."""

import json as jsonlib
import logging
from pathlib import Path
from typing import Any, Callable, Optional

import click

from .api import LiveDBClient
from .cli_progress import UploadProgressDisplay
from .config import LiveDBConfig, config
from .exceptions import LiveDBAPIError, LiveDBConfigError
from .models import UploadResponse
from .output import OutputFormatter
from .utils import (
    DEFAULT_DEVICE_NAME,
    DEFAULT_FOLDER_NAME,
    SMART_UPLOAD_THRESHOLD,
    format_size,
)

logger = logging.getLogger(__name__)


def _build_client(ctx: Any, require_token: bool = True) -> LiveDBClient:
    """Create a client from the global options and the saved configuration."""
    out: OutputFormatter = ctx.obj["out"]
    token = ctx.obj.get("token") or config.token

    if require_token and not token:
        out.error(
            "No token configured. Run 'livedb init EMAIL' or set LIVEDB_TOKEN."
        )
        ctx.exit(1)

    overrides: dict[str, Any] = {
        "base_url": ctx.obj.get("base_url") or config.base_url
    }
    if ctx.obj.get("offline_cache"):
        overrides["enable_local_storage"] = True

    try:
        client_config = LiveDBConfig.from_env(**overrides)
    except LiveDBConfigError as e:
        out.error(str(e))
        ctx.exit(1)

    return LiveDBClient(client_config, token=token)


def _parse_json_object(value: str) -> dict[str, Any]:
    try:
        data = jsonlib.loads(value)
    except ValueError as e:
        raise click.BadParameter(f"Invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise click.BadParameter("Expected a JSON object")
    return data


def _parse_filters(values: tuple[str, ...]) -> Optional[dict[str, str]]:
    if not values:
        return None
    filters = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise click.BadParameter(
                f"Filter must look like key=value, got '{item}'",
                param_hint="--filter",
            )
        filters[key] = value
    return filters


def _run_db_call(ctx: Any, func: Callable[[LiveDBClient], Any], title: str) -> None:
    """Run a database call and print its result, exiting 1 on API errors."""
    out: OutputFormatter = ctx.obj["out"]
    with _build_client(ctx) as client:
        try:
            result = func(client)
        except LiveDBAPIError as e:
            out.error(str(e))
            ctx.exit(1)
    out.print_data(result, title=title)


def _report_upload(ctx: Any, response: UploadResponse, title: str) -> None:
    out: OutputFormatter = ctx.obj["out"]
    if not response.success:
        out.error(f"Upload failed: {response.message}")
        ctx.exit(1)

    if out.json_output:
        out.output_json(response.to_dict())
        return
    out.print_summary(
        title,
        [
            ("Status", "✓ Uploaded"),
            ("Link", response.link),
            ("Size", f"{response.file_size_kb} KB"),
            ("Type", response.file_type or "unknown"),
            ("Encrypted", "yes" if response.is_encrypted else "no"),
        ],
    )


@click.group()
@click.option("--token", "-t", envvar="LIVEDB_TOKEN", help="LiveDB bearer token")
@click.option("--base-url", envvar="LIVEDB_BASE_URL", help="LiveDB API root URL")
@click.option(
    "--offline-cache",
    is_flag=True,
    help="Cache GET responses and serve them when the server is unreachable",
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="pylivedb")
@click.pass_context
def main(
    ctx: Any,
    token: Optional[str],
    base_url: Optional[str],
    offline_cache: bool,
    quiet: bool,
    json: bool,
    verbose: bool,
) -> None:
    """LiveDB - Cloud database & storage from the command line."""
    ctx.ensure_object(dict)
    ctx.obj["token"] = token
    ctx.obj["base_url"] = base_url
    ctx.obj["offline_cache"] = offline_cache
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pylivedb").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.argument("email")
@click.pass_context
def init(ctx: Any, email: str) -> None:
    """Generate a token for EMAIL and save it.

    The token is stored in ~/.config/pylivedb/config.json for future use.
    """
    out: OutputFormatter = ctx.obj["out"]

    out.info(f"Requesting token for {email}...")
    with _build_client(ctx, require_token=False) as client:
        token = client.generate_token(email)

    if not token:
        out.error("Token generation failed")
        ctx.exit(1)

    config.save_token(token)
    if ctx.obj.get("base_url"):
        config.save_base_url(ctx.obj["base_url"])

    out.print_summary(
        "Initialization Complete",
        [
            ("Status", "✓ Token saved successfully"),
            ("Token", f"{token[:8]}..."),
            ("Config file", str(config.get_config_path())),
        ],
    )


@main.command()
@click.pass_context
def status(ctx: Any) -> None:
    """Show the current configuration."""
    out: OutputFormatter = ctx.obj["out"]
    token = ctx.obj.get("token") or config.token

    out.print_summary(
        "LiveDB Status",
        [
            ("Base URL", ctx.obj.get("base_url") or config.base_url),
            ("Token", f"{token[:8]}..." if token else "not set"),
            ("Config file", str(config.get_config_path())),
            ("Offline cache", "on" if ctx.obj.get("offline_cache") else "off"),
        ],
    )


@main.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--folder", "-f", default=DEFAULT_FOLDER_NAME, help="Remote folder")
@click.option("--device", default=DEFAULT_DEVICE_NAME, help="Device name to report")
@click.option("--secret", is_flag=True, help="Store the file encrypted")
@click.option("--db-folder-id", type=int, default=None, help="Database folder ID")
@click.option(
    "--mode",
    type=click.Choice(["auto", "direct", "chunked"]),
    default="auto",
    help="Upload method (default: auto, chunked from 5 MB)",
)
@click.option(
    "--chunk-size",
    type=click.IntRange(min=1),
    default=None,
    help="Chunk size in bytes for chunked uploads",
)
@click.option("--no-progress", is_flag=True, help="Disable progress bars")
@click.pass_context
def upload(
    ctx: Any,
    path: Path,
    folder: str,
    device: str,
    secret: bool,
    db_folder_id: Optional[int],
    mode: str,
    chunk_size: Optional[int],
    no_progress: bool,
) -> None:
    """Upload a file to LiveDB storage."""
    out: OutputFormatter = ctx.obj["out"]
    file_size = path.stat().st_size

    if mode == "auto":
        mode = "chunked" if file_size >= SMART_UPLOAD_THRESHOLD else "direct"
    out.info(f"Uploading {path.name} ({format_size(file_size)}, {mode})")

    show_progress = not (no_progress or out.quiet or out.json_output)

    with _build_client(ctx) as client:

        def _do_upload(on_progress: Any = None) -> UploadResponse:
            if mode == "chunked":
                return client.upload_file_by_chunks(
                    path,
                    folder_name=folder,
                    device_name=device,
                    is_secret=secret,
                    chunk_size=chunk_size,
                    db_folder_id=db_folder_id,
                    on_progress=on_progress,
                )
            return client.upload_file(
                path,
                folder_name=folder,
                device_name=device,
                is_secret=secret,
                db_folder_id=db_folder_id,
                on_progress=on_progress,
            )

        if show_progress:
            with UploadProgressDisplay(path.name, total=file_size) as display:
                response = _do_upload(display.callback)
        else:
            response = _do_upload()

    _report_upload(ctx, response, "Upload Complete")


@main.command("upload-base64")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--file-name", default=None, help="Remote file name (default: PATH name)")
@click.option("--folder", "-f", default=DEFAULT_FOLDER_NAME, help="Remote folder")
@click.option("--device", default=DEFAULT_DEVICE_NAME, help="Device name to report")
@click.option("--secret", is_flag=True, help="Store the file encrypted")
@click.option("--db-folder-id", type=int, default=None, help="Database folder ID")
@click.option("--chunked", is_flag=True, help="Send the bytes in chunks")
@click.option(
    "--chunk-size",
    type=click.IntRange(min=1),
    default=None,
    help="Chunk size in bytes (with --chunked)",
)
@click.pass_context
def upload_base64(
    ctx: Any,
    path: Path,
    file_name: Optional[str],
    folder: str,
    device: str,
    secret: bool,
    db_folder_id: Optional[int],
    chunked: bool,
    chunk_size: Optional[int],
) -> None:
    """Upload a file's bytes from memory (base64 or chunked)."""
    data = path.read_bytes()
    name = file_name or path.name

    with _build_client(ctx) as client:
        if chunked:
            response = client.upload_by_base64_chunks(
                data,
                file_name=name,
                folder_name=folder,
                device_name=device,
                is_secret=secret,
                chunk_size=chunk_size,
                db_folder_id=db_folder_id,
            )
        else:
            response = client.upload_by_base64(
                data,
                file_name=name,
                folder_name=folder,
                device_name=device,
                is_secret=secret,
                db_folder_id=db_folder_id,
            )

    _report_upload(ctx, response, "Upload Complete (Base64)")


@main.command()
@click.argument("link")
@click.pass_context
def delete(ctx: Any, link: str) -> None:
    """Delete an uploaded file by its LINK."""
    out: OutputFormatter = ctx.obj["out"]

    with _build_client(ctx) as client:
        deleted = client.delete_file(link)

    if not deleted:
        out.error(f"Delete failed: {link}")
        ctx.exit(1)

    if out.json_output:
        out.output_json({"deleted": True, "link": link})
    else:
        out.success(f"✓ Deleted {link}")


# =========================
# Database commands
# =========================


@main.group()
def db() -> None:
    """Work with projects, collections and documents."""


@db.command("projects")
@click.pass_context
def db_projects(ctx: Any) -> None:
    """List all projects."""
    _run_db_call(ctx, lambda client: client.db.get_projects(), "Projects")


@db.command("create-project")
@click.argument("name")
@click.option("--description", "-d", default="", help="Project description")
@click.pass_context
def db_create_project(ctx: Any, name: str, description: str) -> None:
    """Create project NAME."""
    _run_db_call(
        ctx,
        lambda client: client.db.project(name).create(description=description),
        f"Created project {name}",
    )


@db.command("collections")
@click.argument("project")
@click.pass_context
def db_collections(ctx: Any, project: str) -> None:
    """List the collections of PROJECT."""
    _run_db_call(
        ctx,
        lambda client: client.db.project(project).get_collections(),
        f"Collections in {project}",
    )


@db.command("add")
@click.argument("project")
@click.argument("collection")
@click.argument("data")
@click.pass_context
def db_add(ctx: Any, project: str, collection: str, data: str) -> None:
    """Add the JSON object DATA as a document to COLLECTION."""
    document = _parse_json_object(data)
    _run_db_call(
        ctx,
        lambda client: client.db.collection(project, collection).add(document),
        "Document added",
    )


@db.command("query")
@click.argument("project")
@click.argument("collection")
@click.option(
    "--filter",
    "filters",
    multiple=True,
    help="Filter as key=value, e.g. 'age[gt]=18' or '_limit=5' (repeatable)",
)
@click.pass_context
def db_query(ctx: Any, project: str, collection: str, filters: tuple[str, ...]) -> None:
    """Query documents in COLLECTION."""
    parsed = _parse_filters(filters)
    _run_db_call(
        ctx,
        lambda client: client.db.collection(project, collection).get(filters=parsed),
        f"{project}/{collection}",
    )


@db.command("get")
@click.argument("project")
@click.argument("collection")
@click.argument("document_id")
@click.pass_context
def db_get(ctx: Any, project: str, collection: str, document_id: str) -> None:
    """Show document DOCUMENT_ID."""
    _run_db_call(
        ctx,
        lambda client: client.db.collection(project, collection).doc(document_id).get(),
        f"{project}/{collection}/{document_id}",
    )


@db.command("update")
@click.argument("project")
@click.argument("collection")
@click.argument("document_id")
@click.argument("data")
@click.pass_context
def db_update(
    ctx: Any, project: str, collection: str, document_id: str, data: str
) -> None:
    """Update document DOCUMENT_ID with the JSON object DATA."""
    changes = _parse_json_object(data)
    _run_db_call(
        ctx,
        lambda client: client.db.collection(project, collection)
        .doc(document_id)
        .update(changes),
        f"Updated {document_id}",
    )


@db.command("delete")
@click.argument("project")
@click.argument("collection")
@click.argument("document_id")
@click.pass_context
def db_delete(ctx: Any, project: str, collection: str, document_id: str) -> None:
    """Delete document DOCUMENT_ID."""
    _run_db_call(
        ctx,
        lambda client: client.db.collection(project, collection)
        .doc(document_id)
        .delete(),
        f"Deleted {document_id}",
    )


if __name__ == "__main__":
    main()
