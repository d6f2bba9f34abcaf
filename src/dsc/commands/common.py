"""Option handling shared by the upload-like commands."""

from __future__ import annotations

from typing import Optional, Union

import typer

from dsc.auth.endpoint import select_endpoint
from dsc.context import CliState
from dsc.models import (
    Direction,
    EndpointSelection,
    NoCredential,
    SessionToken,
    UploadMeta,
)


def resolve_endpoint(
    state: CliState,
    basic: Optional[str],
    header: Optional[str],
    integration: bool,
    collective: Optional[str],
    source: Optional[str],
) -> tuple[EndpointSelection, Optional[SessionToken]]:
    """Classify the endpoint options and resolve the session if one is needed.

    The session store is only consulted when neither the integration
    endpoint nor a source id is in play.
    """
    session: Union[SessionToken, NoCredential] = NoCredential()
    if not integration and not (source or state.config.default_source_id):
        session = state.credential(required=False)
    selection = select_endpoint(
        basic=basic,
        header=header,
        integration=integration,
        collective=collective,
        source=source,
        default_source_id=state.config.default_source_id,
        session_available=isinstance(session, SessionToken),
    )
    return selection, session if isinstance(session, SessionToken) else None


def build_upload_meta(
    single_item: bool,
    direction: Optional[Direction],
    folder: Optional[str],
    allow_dupes: bool,
    tags: Optional[list[str]],
    file_filter: Optional[str],
    language: Optional[str],
) -> UploadMeta:
    """Translate the upload meta flags; tags keep their command-line order."""
    return UploadMeta(
        multiple=not single_item,
        direction=direction,
        folder=folder,
        skip_duplicates=not allow_dupes,
        tags=list(tags or []),
        file_filter=file_filter,
        language=language,
    )


# Shared option declarations for upload, file-exists, and watch.

BASIC_OPTION = typer.Option(
    None, "--basic", help="Basic auth for the integration endpoint as 'user:password'."
)
HEADER_OPTION = typer.Option(
    None, "--header", help="Header for the integration endpoint as 'Name:Value'."
)
INTEGRATION_OPTION = typer.Option(
    False, "--integration", "-i", help="Use the integration endpoint (needs --collective)."
)
COLLECTIVE_OPTION = typer.Option(
    None, "--collective", "-c", help="Collective for the integration endpoint."
)
SOURCE_OPTION = typer.Option(
    None, "--source", help="Source id; defaults to default_source_id from the config."
)
SINGLE_ITEM_OPTION = typer.Option(
    False, "--single-item", help="Put all files into one item instead of one item per file."
)
DIRECTION_OPTION = typer.Option(None, "--direction", help="Mark items as incoming or outgoing.")
FOLDER_OPTION = typer.Option(None, "--folder", help="Folder id to put new items into.")
ALLOW_DUPES_OPTION = typer.Option(
    False, "--allow-dupes", help="Upload files even if the server already has them."
)
TAG_OPTION = typer.Option(None, "--tag", help="Tag to add; repeat for several tags.")
FILE_FILTER_OPTION = typer.Option(
    None, "--file-filter", help="Glob the server applies to files inside archives."
)
LANGUAGE_OPTION = typer.Option(None, "--language", "-l", help="Document language, e.g. 'deu'.")
MATCHES_OPTION = typer.Option(None, "--matches", help="Only files whose name matches this glob.")
DELETE_OPTION = typer.Option(False, "--delete", help="Delete local files after a successful upload.")
