from netlint.erc import ERCViolation, Severity
from netlint.models import Net, Netlist, NetlistComponent, PinConnection


def format_netlist(netlist: Netlist, components_filter: set[str] | None = None) -> str:
    pin_to_nets = _build_pin_index(netlist.nets)

    lines = []
    for comp in netlist.components:
        if components_filter is not None and comp.reference not in components_filter:
            continue
        lines.append(_format_component_header(comp))
        for pin, net, peers in _get_component_pins(comp.reference, pin_to_nets):
            lines.append(_format_pin_line(pin, net, peers))
        lines.append("")

    return "\n".join(lines).rstrip("\n") + "\n"


def format_summary(netlist: Netlist) -> str:
    refs = sorted(c.reference for c in netlist.components)
    power = sorted(n.name for n in netlist.nets if n.is_power)
    lines = [
        f"Components: {len(netlist.components)}",
        f"Nets: {len(netlist.nets)}",
        "",
        "References: " + ", ".join(refs),
        "",
        "Power nets: " + ", ".join(power) if power else "Power nets: (none)",
    ]
    return "\n".join(lines) + "\n"


def format_bom(netlist: Netlist) -> str:
    pin_counts: dict[str, int] = {}
    for net in netlist.nets:
        for conn in net.connections:
            pin_counts[conn.component_ref] = pin_counts.get(conn.component_ref, 0) + 1

    sorted_comps = sorted(netlist.components, key=lambda c: c.reference)

    ref_width = max(len("Ref"), max((len(c.reference) for c in sorted_comps), default=0))
    val_width = max(len("Value"), max((len(c.value) for c in sorted_comps), default=0))
    fp_width = max(len("Footprint"), max((len(c.footprint) for c in sorted_comps), default=0))

    header = f"{'Ref':<{ref_width}}  {'Value':<{val_width}}  {'Footprint':<{fp_width}}  Pins"
    lines = [header]
    for comp in sorted_comps:
        pins = pin_counts.get(comp.reference, 0)
        lines.append(
            f"{comp.reference:<{ref_width}}  {comp.value:<{val_width}}  {comp.footprint:<{fp_width}}  {pins}"
        )
    return "\n".join(lines) + "\n"


def format_violations(violations: list[ERCViolation]) -> str:
    errors = sum(1 for v in violations if v.severity is Severity.ERROR)
    warnings = len(violations) - errors

    lines = []
    for v in violations:
        loc = f"({v.location.x:g}, {v.location.y:g})"
        lines.append(f"{v.severity.value.upper():<7}  {v.type.value:<19}  {loc}  {v.message}")
    if lines:
        lines.append("")
    lines.append(f"{errors} error(s), {warnings} warning(s)")
    return "\n".join(lines) + "\n"


def _pin_display(conn: PinConnection) -> str:
    if not conn.pin_name or conn.pin_name == "~":
        return conn.pin_number
    return conn.pin_name


_PinEntry = tuple[PinConnection, Net, list[PinConnection]]


def _build_pin_index(nets: list[Net]) -> dict[str, list[_PinEntry]]:
    index: dict[str, list[_PinEntry]] = {}
    for net in nets:
        for conn in net.connections:
            peers = [c for c in net.connections if c is not conn]
            index.setdefault(conn.component_ref, []).append((conn, net, peers))
    return index


def _get_component_pins(ref: str, pin_to_nets: dict[str, list[_PinEntry]]) -> list[_PinEntry]:
    return pin_to_nets.get(ref, [])


def _format_component_header(comp: NetlistComponent) -> str:
    parts = [comp.reference, comp.value, comp.footprint]
    if comp.properties:
        props = ", ".join(f"{k}: {v}" for k, v in comp.properties.items())
        parts.append("{" + props + "}")
    return "  ".join(p for p in parts if p)


def _format_pin_line(pin: PinConnection, net: Net, peers: list[PinConnection]) -> str:
    if net.is_power:
        return f"  {_pin_display(pin)}  <- {net.name}"

    peer_part = ", ".join(f"{p.component_ref}:{_pin_display(p)}" for p in peers)

    parts = [f"  {_pin_display(pin)}"]
    if peer_part:
        parts.append(f"-- {peer_part}")
    parts.append(f"({net.name})")
    return "  ".join(parts)
