"""CGMES model header parsing.

Every boundary file starts with a ``md:FullModel`` element whose
``rdf:about`` attribute is the globally unique model identifier::

    <rdf:RDF xmlns:rdf="..." xmlns:md="http://iec.ch/TC57/61970-552/ModelDescription/1#">
      <md:FullModel rdf:about="urn:uuid:11111111-aaaa-aaaa-aaaa-aaaaaaaaaaaa">
        <md:Model.scenarioTime>2020-02-02T18:35:00Z</md:Model.scenarioTime>
        <md:Model.profile>http://entsoe.eu/CIM/EquipmentBoundary/3/1</md:Model.profile>
        ...
      </md:FullModel>
      ...

Only the header is parsed: reading stops at the end of ``md:FullModel``.
"""

from __future__ import annotations

import dataclasses
import io
import logging
import xml.etree.ElementTree as ET

from boundary_importer.exceptions import MalformedHeaderError

logger = logging.getLogger(__name__)

FULL_MODEL_TAG = "FullModel"
ABOUT_ATTRIBUTE = "about"
RESOURCE_ATTRIBUTE = "resource"


@dataclasses.dataclass(frozen=True)
class BoundaryHeader:
    id: str
    scenario_time: str | None = None
    created: str | None = None
    description: str | None = None
    version: str | None = None
    modeling_authority_set: str | None = None
    profiles: tuple[str, ...] = ()
    dependent_on: tuple[str, ...] = ()


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _attribute(elem: ET.Element, local: str) -> str | None:
    for key, value in elem.attrib.items():
        if _local_name(key) == local:
            return value
    return None


def _text(elem: ET.Element) -> str | None:
    if elem.text is None:
        return None
    return elem.text.strip() or None


def _build_header(full_model: ET.Element) -> BoundaryHeader:
    model_id = (_attribute(full_model, ABOUT_ATTRIBUTE) or "").strip()
    if not model_id:
        raise MalformedHeaderError("FullModel element has no rdf:about identifier")

    fields: dict[str, str | None] = {}
    profiles: list[str] = []
    dependent_on: list[str] = []
    for child in full_model:
        name = _local_name(child.tag)
        if name == "Model.scenarioTime":
            fields["scenario_time"] = _text(child)
        elif name == "Model.created":
            fields["created"] = _text(child)
        elif name == "Model.description":
            fields["description"] = _text(child)
        elif name == "Model.version":
            fields["version"] = _text(child)
        elif name == "Model.modelingAuthoritySet":
            fields["modeling_authority_set"] = _text(child)
        elif name == "Model.profile":
            value = _text(child)
            if value:
                profiles.append(value)
        elif name == "Model.DependentOn":
            value = _attribute(child, RESOURCE_ATTRIBUTE) or _text(child)
            if value:
                dependent_on.append(value)
    return BoundaryHeader(
        id=model_id,
        profiles=tuple(profiles),
        dependent_on=tuple(dependent_on),
        **fields,
    )


def parse_boundary_header(data: bytes) -> BoundaryHeader:
    """Parse the model header of a boundary file.

    Raises:
        MalformedHeaderError: The content is not XML (including an unknown
            or undecodable declared encoding), holds no ``FullModel`` element,
            or the element carries no identifier.
    """
    try:
        for event, elem in ET.iterparse(io.BytesIO(data), events=("end",)):
            if _local_name(elem.tag) == FULL_MODEL_TAG:
                return _build_header(elem)
    # expat raises LookupError for an unknown encoding, UnicodeError for bad bytes.
    except (ET.ParseError, LookupError, ValueError) as exc:
        raise MalformedHeaderError(
            f"Cannot parse model header: {exc}", context={"error": str(exc)}
        ) from exc
    raise MalformedHeaderError("No FullModel header found")


def extract_identifier(data: bytes) -> str:
    return parse_boundary_header(data).id
