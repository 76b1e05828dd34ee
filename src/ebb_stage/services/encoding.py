"""Payload encoders for deletion events.

Two representations of "status X was deleted" leave this service:

- a compact JSON event pushed to streaming subscribers, and
- an Atom entry carrying a ``delete`` activity for remote instances.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING
from xml.etree import ElementTree

from ebb_stage.core.settings import settings

if TYPE_CHECKING:
    from ebb_stage.services.removal import RemovedStatus

logger = logging.getLogger(__name__)

ATOM_NS = "http://www.w3.org/2005/Atom"
ACTIVITY_NS = "http://activitystrea.ms/spec/1.0/"

VERB_DELETE = f"{ACTIVITY_NS}delete"
OBJECT_TYPE_NOTE = f"{ACTIVITY_NS}note"
OBJECT_TYPE_ACTIVITY = f"{ACTIVITY_NS}activity"

ElementTree.register_namespace("", ATOM_NS)
ElementTree.register_namespace("activity", ACTIVITY_NS)


def encode_deletion_event(status_id: int) -> bytes:
    """Return the streaming event announcing that ``status_id`` is gone."""
    return json.dumps(
        {"event": "delete", "payload": status_id},
        separators=(",", ":"),
    ).encode("utf-8")


def status_uri(username: str, status_id: int) -> str:
    """Return the canonical URI of a local status."""
    base = settings.federation_base_url.rstrip("/")
    return f"{base}/users/{username}/statuses/{status_id}"


def account_uri(username: str) -> str:
    """Return the canonical URI of a local account."""
    base = settings.federation_base_url.rstrip("/")
    return f"{base}/users/{username}"


def _atom(tag: str) -> str:
    return f"{{{ATOM_NS}}}{tag}"


def _activity(tag: str) -> str:
    return f"{{{ACTIVITY_NS}}}{tag}"


def render_federation_payload(status: RemovedStatus) -> bytes:
    """Render the Atom ``delete`` entry for a removed status.

    Reblogs are rendered as the removal of a share activity whose object is the
    original status, so remote instances can match it against what they stored.

    Args:
        status: Snapshot of the removed status.

    Returns:
        UTF-8 encoded XML document with an ``<entry>`` root.
    """
    uri = status.uri or status_uri(status.account_username, status.id)

    entry = ElementTree.Element(_atom("entry"))
    ElementTree.SubElement(entry, _atom("id")).text = uri
    ElementTree.SubElement(entry, _atom("title")).text = f"{status.account_username} deleted status"

    author = ElementTree.SubElement(entry, _atom("author"))
    ElementTree.SubElement(author, _atom("name")).text = status.account_username
    ElementTree.SubElement(author, _atom("uri")).text = account_uri(status.account_username)

    ElementTree.SubElement(entry, _activity("verb")).text = VERB_DELETE

    if status.reblog_of_id is not None:
        ElementTree.SubElement(entry, _activity("object-type")).text = OBJECT_TYPE_ACTIVITY
        shared = ElementTree.SubElement(entry, _activity("object"))
        ElementTree.SubElement(shared, _atom("id")).text = status.reblog_of_uri or str(
            status.reblog_of_id
        )
    else:
        ElementTree.SubElement(entry, _activity("object-type")).text = OBJECT_TYPE_NOTE

    ElementTree.SubElement(entry, _atom("link"), rel="alternate", type="text/html", href=uri)

    logger.debug("Rendered federation payload for status %s", status.id)
    return ElementTree.tostring(entry, encoding="utf-8", xml_declaration=True)
