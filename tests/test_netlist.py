import pytest

from netlint.models import (
    InvalidDocumentError,
    NetLabel,
    Pin,
    PinType,
    Point,
    PowerPort,
    SchematicComponent,
    SchematicDocument,
    Sheet,
    Symbol,
    Wire,
)
from netlint.netlist import NetCounter, collect_components, extract_netlist


def _resistor(cid, ref, x, y, rotation=0.0, **kwargs):
    pins = [
        Pin(id=f"{cid}-1", name="~", number="1", type=PinType.PASSIVE, position=Point(-10, 0)),
        Pin(id=f"{cid}-2", name="~", number="2", type=PinType.PASSIVE, position=Point(10, 0)),
    ]
    return SchematicComponent(
        id=cid,
        position=Point(x, y),
        reference=ref,
        value="10k",
        rotation=rotation,
        symbol=Symbol(id="sym-r", name="R", pins=pins),
        **kwargs,
    )


def _doc(*sheets):
    return SchematicDocument(id="doc", name="test", sheets=list(sheets))


def _conn_keys(net):
    return {(c.component_ref, c.pin_number) for c in net.connections}


def _nets_by_name(netlist):
    return {n.name: n for n in netlist.nets}


def test_bus_bar_wire_joins_far_points():
    sheet = Sheet(
        id="s",
        components=[_resistor("a", "R1", 10, 0), _resistor("b", "R2", 110, 100)],
        wires=[Wire(id="w", points=[Point(0, 0), Point(100, 50), Point(100, 100)])],
    )
    netlist = extract_netlist(_doc(sheet))
    joined = [n for n in netlist.nets if _conn_keys(n) == {("R1", "1"), ("R2", "1")}]
    assert len(joined) == 1


def test_label_wins_over_power_port():
    sheet = Sheet(
        id="s",
        components=[_resistor("a", "R1", 10, 0)],
        net_labels=[NetLabel(id="l", position=Point(0, 0), text="VCC")],
        power_ports=[PowerPort(id="p", position=Point(0, 0), name="+5V")],
    )
    nets = _nets_by_name(extract_netlist(_doc(sheet)))
    assert "VCC" in nets
    assert "+5V" not in nets
    assert _conn_keys(nets["VCC"]) == {("R1", "1")}


def test_power_port_names_net_and_marks_power():
    sheet = Sheet(
        id="s",
        components=[_resistor("a", "R1", 10, 0)],
        power_ports=[PowerPort(id="p", position=Point(0, 0), name="GND")],
    )
    nets = _nets_by_name(extract_netlist(_doc(sheet)))
    assert nets["GND"].is_power


def test_unnamed_nets_get_synthesized_names():
    sheet = Sheet(id="s", components=[_resistor("a", "R1", 0, 0)])
    netlist = extract_netlist(_doc(sheet))
    assert [n.name for n in netlist.nets] == ["Net0", "Net1"]


def test_net_counter_spans_sheets():
    s1 = Sheet(id="s1", components=[_resistor("a", "R1", 0, 0)])
    s2 = Sheet(id="s2", components=[_resistor("b", "R2", 0, 0)])
    netlist = extract_netlist(_doc(s1, s2))
    names = [n.name for n in netlist.nets]
    assert names == ["Net0", "Net1", "Net2", "Net3"]
    assert len(set(names)) == 4


def test_explicit_counter_is_threaded_through():
    counter = NetCounter(start=10)
    netlist = extract_netlist(_doc(Sheet(id="s", components=[_resistor("a", "R1", 0, 0)])), counter)
    assert [n.name for n in netlist.nets] == ["Net10", "Net11"]
    assert counter.value == 12


def test_cross_sheet_merge_by_name():
    s1 = Sheet(
        id="s1",
        components=[_resistor("a", "R1", 10, 0)],
        power_ports=[PowerPort(id="g1", position=Point(0, 0), name="GND")],
    )
    s2 = Sheet(
        id="s2",
        components=[_resistor("b", "R2", 10, 0)],
        power_ports=[PowerPort(id="g2", position=Point(0, 0), name="GND")],
    )
    netlist = extract_netlist(_doc(s1, s2))
    gnd = [n for n in netlist.nets if n.name == "GND"]
    assert len(gnd) == 1
    assert _conn_keys(gnd[0]) == {("R1", "1"), ("R2", "1")}


def test_repeated_component_ids_across_sheets():
    s1 = Sheet(
        id="s1",
        components=[_resistor("c0", "R1", 10, 0)],
        net_labels=[NetLabel(id="l1", position=Point(0, 0), text="A")],
    )
    s2 = Sheet(
        id="s2",
        components=[_resistor("c0", "R2", 10, 0)],
        net_labels=[NetLabel(id="l2", position=Point(0, 0), text="B")],
    )
    nets = _nets_by_name(extract_netlist(_doc(s1, s2)))
    assert _conn_keys(nets["A"]) == {("R1", "1")}
    assert _conn_keys(nets["B"]) == {("R2", "1")}


def test_isolated_power_ports_produce_no_net():
    s1 = Sheet(id="s1", power_ports=[PowerPort(id="g1", position=Point(0, 0), name="GND")])
    s2 = Sheet(id="s2", power_ports=[PowerPort(id="g2", position=Point(500, 500), name="GND")])
    netlist = extract_netlist(_doc(s1, s2))
    assert [n for n in netlist.nets if n.name == "GND"] == []


def test_merge_suppresses_duplicate_pins():
    s1 = Sheet(
        id="s1",
        components=[_resistor("a", "R1", 10, 0)],
        net_labels=[NetLabel(id="l1", position=Point(0, 0), text="SIG")],
    )
    s2 = Sheet(
        id="s2",
        components=[_resistor("a2", "R1", 10, 0)],
        net_labels=[NetLabel(id="l2", position=Point(0, 0), text="SIG")],
    )
    nets = _nets_by_name(extract_netlist(_doc(s1, s2)))
    assert len(nets["SIG"].connections) == 1


def test_groups_without_pins_produce_no_net():
    sheet = Sheet(
        id="s",
        wires=[Wire(id="w", points=[Point(0, 0), Point(50, 0)])],
        net_labels=[NetLabel(id="l", position=Point(0, 0), text="FLOATING")],
    )
    assert extract_netlist(_doc(sheet)).nets == []


def test_rotated_component_pins_land_on_wire():
    comp = _resistor("a", "R1", 0, 0, rotation=90)
    sheet = Sheet(
        id="s",
        components=[comp],
        wires=[Wire(id="w", points=[Point(0, 10), Point(0, 40)])],
        net_labels=[NetLabel(id="l", position=Point(0, 40), text="OUT")],
    )
    nets = _nets_by_name(extract_netlist(_doc(sheet)))
    assert _conn_keys(nets["OUT"]) == {("R1", "2")}


def test_mirrored_component_pins_swap_sides():
    comp = _resistor("a", "R1", 0, 0, mirrored=True)
    sheet = Sheet(id="s", components=[comp], net_labels=[NetLabel(id="l", position=Point(-10, 0), text="LEFT")])
    nets = _nets_by_name(extract_netlist(_doc(sheet)))
    assert _conn_keys(nets["LEFT"]) == {("R1", "2")}


def test_connections_carry_pin_names():
    pins = [Pin(id="p", name="VDD", number="8", type=PinType.POWER_INPUT, position=Point(0, 0))]
    comp = SchematicComponent(id="u", position=Point(0, 0), reference="U1", symbol=Symbol(id="s", pins=pins))
    sheet = Sheet(id="s", components=[comp], power_ports=[PowerPort(id="p", position=Point(0, 0), name="VCC")])
    conn = _nets_by_name(extract_netlist(_doc(sheet)))["VCC"].connections[0]
    assert (conn.component_ref, conn.pin_number, conn.pin_name) == ("U1", "8", "VDD")


def test_collect_components_dedupes_by_reference():
    s1 = Sheet(id="s1", components=[_resistor("a", "R1", 0, 0, footprint="0402", properties={"MPN": "X"})])
    s2 = Sheet(id="s2", components=[_resistor("b", "R1", 0, 0, footprint="0805"), _resistor("c", "", 0, 0)])
    components = collect_components(_doc(s1, s2))
    assert [(c.reference, c.footprint) for c in components] == [("R1", "0402"), ("c", "")]


def test_component_properties_are_copied():
    comp = _resistor("a", "R1", 0, 0, properties={"MPN": "X"})
    netlist = extract_netlist(_doc(Sheet(id="s", components=[comp])))
    netlist.components[0].properties["MPN"] = "changed"
    assert comp.properties == {"MPN": "X"}


def test_extract_is_deterministic():
    sheet = Sheet(
        id="s",
        components=[_resistor("a", "R1", 10, 0), _resistor("b", "R2", 40, 0)],
        wires=[Wire(id="w", points=[Point(20, 0), Point(30, 0)])],
        power_ports=[PowerPort(id="p", position=Point(0, 0), name="VCC")],
    )
    doc = _doc(sheet)
    assert extract_netlist(doc) == extract_netlist(doc)


def test_extract_does_not_mutate_document():
    sheet = Sheet(id="s", components=[_resistor("a", "R1", 0, 0)])
    doc = _doc(sheet)
    before = repr(doc)
    extract_netlist(doc)
    assert repr(doc) == before


def test_empty_document():
    netlist = extract_netlist(SchematicDocument(id="empty"))
    assert netlist.components == []
    assert netlist.nets == []


def test_invalid_document_fails_fast():
    with pytest.raises(InvalidDocumentError):
        extract_netlist(None)
