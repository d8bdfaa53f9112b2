import argparse
import json
import logging
import sys
from fnmatch import fnmatch

from netlint.erc import Severity, check_document
from netlint.formatter import format_bom, format_netlist, format_summary, format_violations
from netlint.kicad import load_kicad_schematic
from netlint.loader import load_document, netlist_to_dict, violations_to_list
from netlint.models import InvalidDocumentError
from netlint.netlist import extract_netlist

logger = logging.getLogger(__name__)


EXAMPLES = """\
Examples:
  netlint netlist board.json                   full netlist
  netlint netlist board.kicad_sch --ref 'U1*'  filter by reference
  netlint netlist board.json --summary         component and net counts
  netlint netlist board.json --json            netlist as JSON
  netlint bom board.json                       bill of materials
  netlint erc board.json --strict              electrical rule check, exit 1 on errors
"""


def load(path: str):
    if path.endswith(".kicad_sch"):
        return load_kicad_schematic(path)
    return load_document(path)


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="netlint",
        description="Extract netlists from schematic documents and check them against electrical rules.",
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command")

    netlist_parser = subparsers.add_parser(
        "netlist",
        help="Show component connectivity and net assignments",
        description="Show per-component pin connections and net assignments. "
        "Use --ref and --net to narrow the output to a subset of components.",
    )
    netlist_parser.add_argument("schematic", help="Path to a .json document or .kicad_sch file")
    netlist_parser.add_argument(
        "--ref", metavar="PATTERN", help="Filter by component reference (glob, e.g. 'U1*')"
    )
    netlist_parser.add_argument("--net", metavar="NAME", help="Filter by net name")
    netlist_parser.add_argument(
        "--summary", action="store_true", help="Component and net counts instead of full netlist"
    )
    netlist_parser.add_argument("--json", action="store_true", help="Print the netlist as JSON")

    bom_parser = subparsers.add_parser(
        "bom",
        help="List components with footprints and connected pin counts",
        description="Print a bill of materials sorted by reference.",
    )
    bom_parser.add_argument("schematic", help="Path to a .json document or .kicad_sch file")

    erc_parser = subparsers.add_parser(
        "erc",
        help="Run electrical rule checks",
        description="Report unconnected pins, driver conflicts, missing power sources, "
        "duplicate references, dangling wires and unlabeled nets.",
    )
    erc_parser.add_argument("schematic", help="Path to a .json document or .kicad_sch file")
    erc_parser.add_argument("--json", action="store_true", help="Print violations as JSON")
    erc_parser.add_argument("--errors-only", action="store_true", help="Hide warnings")
    erc_parser.add_argument(
        "--strict", action="store_true", help="Exit with status 1 when any error is reported"
    )

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        document = load(args.schematic)
    except (OSError, InvalidDocumentError) as exc:
        logger.debug("failed to load %s", args.schematic, exc_info=True)
        print(f"netlint: {exc}", file=sys.stderr)
        sys.exit(2)

    if args.command == "erc":
        violations = check_document(document)
        if args.errors_only:
            violations = [v for v in violations if v.severity is Severity.ERROR]
        if args.json:
            print(json.dumps(violations_to_list(violations), indent=2))
        else:
            print(format_violations(violations), end="")
        if args.strict and any(v.severity is Severity.ERROR for v in violations):
            sys.exit(1)
        return

    netlist = extract_netlist(document)

    if args.command == "bom":
        print(format_bom(netlist), end="")
        return

    if args.json:
        print(json.dumps(netlist_to_dict(netlist), indent=2))
        return

    if args.summary:
        print(format_summary(netlist), end="")
        return

    components_filter = None
    if args.ref:
        matched = {c.reference for c in netlist.components if fnmatch(c.reference, args.ref)}
        if args.net:
            net_refs = set()
            for net in netlist.nets:
                if net.name == args.net:
                    net_refs.update(c.component_ref for c in net.connections)
            matched &= net_refs
        neighbors = set()
        for net in netlist.nets:
            refs_in_net = {c.component_ref for c in net.connections}
            if refs_in_net & matched:
                neighbors.update(refs_in_net)
        components_filter = matched | neighbors
    elif args.net:
        components_filter = set()
        for net in netlist.nets:
            if net.name == args.net:
                components_filter.update(c.component_ref for c in net.connections)

    print(format_netlist(netlist, components_filter=components_filter), end="")


if __name__ == "__main__":
    main()
