"""
Schema CLI tool for Shapeshifter.

This tool inspects document shapes offline, using the same inference and
relation checking as the server:
- infer: Print the inferred schema of a JSON array of documents
- relate: Classify how two document sets relate (subset/superset)

Usage:
    shapeshifter-schema infer albums.json --language yaml
    shapeshifter-schema relate albums.v1.json albums.v2.json

Invariants:
    - relate exits non-zero only when the shapes diverge (neither relation holds)
    - Output of infer is the same schema the server would report

How to change safely:
    - Add new commands, don't modify existing ones
    - Keep output format stable for CI parsing
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from ..errors import ShapeshifterError, ValidationError
from ..schema import DEFAULT_SAMPLE_COUNT, SchemaInferer, SchemaRelationChecker

logger = logging.getLogger(__name__)


class SchemaCLI:
    """CLI tool for offline schema inspection.

    Example:
        >>> cli = SchemaCLI()
        >>> cli.relate("albums.v1.json", "albums.v2.json")["relation"]
        'superset'
    """

    def __init__(self, sample_count: int = DEFAULT_SAMPLE_COUNT) -> None:
        self.inferer = SchemaInferer()
        self.checker = SchemaRelationChecker(sample_count=sample_count)

    def infer(self, path: str, name: str | None = None, language: str | None = None) -> str:
        """Infer and render the schema of a document file.

        Args:
            path: JSON file holding an array of documents (or one document)
            name: Schema title (default: file stem)
            language: Rendering target (schema, json, yaml)

        Returns:
            Rendered schema text
        """
        documents = _load_documents(path)
        schema = self.inferer.infer(name or Path(path).stem, documents)
        rendered = self.inferer.render(schema, language)
        if isinstance(rendered, str):
            return rendered
        return json.dumps(rendered, indent=2)

    def relate(self, old_path: str, new_path: str) -> dict[str, Any]:
        """Classify the shape of new documents against old ones.

        Args:
            old_path: Existing documents
            new_path: Incoming documents

        Returns:
            Dictionary with is_subset, is_superset and relation
        """
        old_schema = self.inferer.infer("old", _load_documents(old_path))
        new_schema = self.inferer.infer("new", _load_documents(new_path))

        is_subset = self.checker.is_subset(new_schema, old_schema)
        is_superset = self.checker.is_subset(old_schema, new_schema)

        if is_subset and is_superset:
            relation = "equal"
        elif is_subset:
            relation = "subset"
        elif is_superset:
            relation = "superset"
        else:
            relation = "divergent"

        return {"is_subset": is_subset, "is_superset": is_superset, "relation": relation}


def _load_documents(path: str) -> list[dict[str, Any]]:
    with open(path) as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise ValidationError(f"{path} must hold a JSON array of documents", field_name="file")
    return data


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for schema tool."""
    parser = argparse.ArgumentParser(description="Shapeshifter schema inspection tool")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # infer command
    infer_parser = subparsers.add_parser("infer", help="Print the inferred schema of documents")
    infer_parser.add_argument("file", help="JSON file with an array of documents")
    infer_parser.add_argument("--name", help="Schema title (default: file name)")
    infer_parser.add_argument(
        "--language", choices=["schema", "json", "yaml"], default="schema", help="Output format"
    )

    # relate command
    relate_parser = subparsers.add_parser("relate", help="Classify new documents against old ones")
    relate_parser.add_argument("old", help="JSON file with existing documents")
    relate_parser.add_argument("new", help="JSON file with incoming documents")
    relate_parser.add_argument(
        "--samples", type=int, default=DEFAULT_SAMPLE_COUNT, help="Instances generated per check"
    )
    relate_parser.add_argument(
        "--format", choices=["text", "json"], default="text", help="Output format"
    )

    args = parser.parse_args(argv)

    try:
        if args.command == "infer":
            print(SchemaCLI().infer(args.file, args.name, args.language))
            sys.exit(0)

        elif args.command == "relate":
            result = SchemaCLI(sample_count=args.samples).relate(args.old, args.new)

            if args.format == "json":
                print(json.dumps(result, indent=2))
            else:
                print(f"Relation: {result['relation']}")
                print(f"  subset:   {result['is_subset']}")
                print(f"  superset: {result['is_superset']}")

            sys.exit(1 if result["relation"] == "divergent" else 0)

    except (OSError, json.JSONDecodeError, ShapeshifterError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
