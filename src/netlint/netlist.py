from __future__ import annotations

import logging

from netlint.connectivity import build_connectivity, resolve_net_names
from netlint.models import (
    Net,
    Netlist,
    NetlistComponent,
    PinConnection,
    SchematicDocument,
    Sheet,
    require_document,
)

logger = logging.getLogger(__name__)


class NetCounter:
    """Source of synthesized net names, shared by every sheet of one extraction."""

    def __init__(self, start: int = 0):
        self.value = start

    def next_name(self) -> str:
        name = f"Net{self.value}"
        self.value += 1
        return name


def extract_netlist(document: SchematicDocument, counter: NetCounter | None = None) -> Netlist:
    document = require_document(document)
    if counter is None:
        counter = NetCounter()

    components = collect_components(document)

    nets: list[Net] = []
    by_name: dict[str, Net] = {}
    for sheet in document.sheets:
        for net in _extract_sheet_nets(sheet, counter):
            existing = by_name.get(net.name)
            if existing is None:
                by_name[net.name] = net
                nets.append(net)
            else:
                _merge_into(existing, net)

    logger.debug("extracted %d components and %d nets", len(components), len(nets))
    return Netlist(components=components, nets=nets)


def collect_components(document: SchematicDocument) -> list[NetlistComponent]:
    seen: set[str] = set()
    result = []
    for sheet in document.sheets:
        for comp in sheet.components:
            ref = comp.display_ref
            if ref in seen:
                continue
            seen.add(ref)
            result.append(NetlistComponent(
                reference=ref,
                value=comp.value or "",
                footprint=comp.footprint or "",
                properties=dict(comp.properties or {}),
            ))
    return result


def _extract_sheet_nets(sheet: Sheet, counter: NetCounter) -> list[Net]:
    conn = build_connectivity(sheet)
    names = resolve_net_names(conn, sheet)
    # component ids are only unique per sheet, so refs come from the placed component
    refs = {handle: comp.display_ref for handle, comp, _ in conn.pin_entries}

    nets = []
    for root, members in conn.groups().items():
        connections = []
        for handle in members:
            ref = refs.get(handle)
            if ref is None:
                continue
            node = conn.node(handle)
            connections.append(PinConnection(ref, node.pin_number, node.pin_name))

        if not connections:
            continue

        if root in names:
            name, is_power = names[root]
        else:
            name, is_power = counter.next_name(), False
        nets.append(Net(name=name, connections=connections, is_power=is_power))
    return nets


def _merge_into(existing: Net, other: Net):
    present = {(c.component_ref, c.pin_number) for c in existing.connections}
    for conn in other.connections:
        key = (conn.component_ref, conn.pin_number)
        if key in present:
            continue
        present.add(key)
        existing.connections.append(conn)
    existing.is_power = existing.is_power or other.is_power
