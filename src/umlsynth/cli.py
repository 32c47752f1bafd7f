"""CLI entry point for umlsynth."""

import argparse
import json
import logging
import sys
from pathlib import Path

from .codec import (
    diff_to_dict,
    project_from_dict,
    state_from_dict,
    update_to_dict,
)
from .differ import compute_diff, has_significant_changes
from .layout import layout_config_for
from .models import ContractError, DiagramScope, LayoutDirection, ScopeMode
from .pipeline import regenerate
from .scope import resolve_scope

log = logging.getLogger(__name__)


def _load_json(path: str) -> dict:
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as e:
        raise ContractError(f"cannot read {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ContractError(f"{path} is not valid JSON: {e}") from e


def _scope_from_args(args: argparse.Namespace) -> DiagramScope:
    return DiagramScope(mode=ScopeMode(args.mode), active_file_id=args.active)


def cmd_generate(args: argparse.Namespace) -> int:
    project = project_from_dict(_load_json(args.project))
    scope = _scope_from_args(args)
    previous = state_from_dict(_load_json(args.previous)) if args.previous else None
    config = layout_config_for(scope.mode, LayoutDirection(args.direction))

    update = regenerate(project, scope, previous=previous, config=config)
    text = json.dumps(update_to_dict(update), indent=2)

    if args.output:
        Path(args.output).write_text(text + "\n", encoding="utf-8")
        print(f"Wrote {len(update.state.nodes)} nodes, {len(update.state.edges)} edges → {args.output}",
              file=sys.stderr)
    else:
        print(text)
    if update.used_fallback:
        print("  layout: grid fallback", file=sys.stderr)
    return 0


def cmd_scope(args: argparse.Namespace) -> int:
    project = project_from_dict(_load_json(args.project))
    scope = _scope_from_args(args)
    result = resolve_scope(scope, project.entities_by_file, project.import_graph())

    print(f"Scope:    {scope.mode.value}" + (f" ({scope.active_file_id})" if scope.active_file_id else ""))
    print(f"Files:    {len(result.file_ids)}")
    for file_id in sorted(result.file_ids):
        print(f"  {file_id}")
    print(f"Entities: {len(result.entities)} of {result.total_before_filter}")
    for e in result.entities:
        print(f"  {e.kind.value:<9} {e.name:<30} {result.reasons[e.id].value}")
    return 0


def cmd_diff(args: argparse.Namespace) -> int:
    old = state_from_dict(_load_json(args.old))
    new = state_from_dict(_load_json(args.new))
    diff = compute_diff(old.nodes, new.nodes, old.edges, new.edges)
    significant = has_significant_changes(old.nodes, new.nodes, old.edges, new.edges)

    if args.json:
        out = diff_to_dict(diff)
        out["significant"] = significant
        print(json.dumps(out, indent=2))
        return 0

    print(f"Significant: {'yes' if significant else 'no'}")
    print(f"  nodes: +{len(diff.nodes_added)} -{len(diff.nodes_removed)} "
          f"~{len(diff.nodes_modified)} ={len(diff.nodes_unchanged)}")
    print(f"  edges: +{len(diff.edges_added)} -{len(diff.edges_removed)} "
          f"~{len(diff.edges_modified)} ={len(diff.edges_unchanged)}")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    from .server import run_server
    run_server(port=args.port)
    return 0


def main(argv: list[str] | None = None) -> None:
    logging.basicConfig(
        level=logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    parser = argparse.ArgumentParser(
        prog="umlsynth",
        description="Class diagram synthesis from normalized entity descriptions",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    sub = parser.add_subparsers(dest="command", required=True)

    # generate
    p = sub.add_parser("generate", help="Generate a positioned diagram from a project file")
    p.add_argument("project", help="Project JSON (files → entities, imports)")
    p.add_argument("--mode", choices=["file", "project"], default="file", help="Scope (default: file)")
    p.add_argument("--active", help="Active file id (file scope)")
    p.add_argument("--previous", help="Previous diagram JSON whose positions are kept")
    p.add_argument("--direction", choices=["TB", "LR"], default="TB", help="Layout direction (default: TB)")
    p.add_argument("-o", "--output", help="Write diagram JSON here instead of stdout")

    # scope
    p = sub.add_parser("scope", help="Show which files and entities a scope makes visible")
    p.add_argument("project", help="Project JSON")
    p.add_argument("--mode", choices=["file", "project"], default="file", help="Scope (default: file)")
    p.add_argument("--active", help="Active file id")

    # diff
    p = sub.add_parser("diff", help="Compare two diagram JSON files")
    p.add_argument("old", help="Previous diagram JSON")
    p.add_argument("new", help="New diagram JSON")
    p.add_argument("--json", action="store_true", help="Emit the diff as JSON")

    # serve
    p = sub.add_parser("serve", help="Start the HTTP diagram service")
    p.add_argument("--port", type=int, default=8420, help="HTTP port (default: 8420)")

    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger("umlsynth").setLevel(logging.DEBUG)

    handlers = {
        "generate": cmd_generate,
        "scope": cmd_scope,
        "diff": cmd_diff,
        "serve": cmd_serve,
    }

    try:
        rc = handlers[args.command](args)
    except ContractError as e:
        print(f"error: {e}", file=sys.stderr)
        rc = 1
    sys.exit(rc)


if __name__ == "__main__":
    main()
