# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""CWL parser adapter.

CWL documents are YAML (or JSON) and are loaded with PyYAML. Each process
object becomes one unit of the shared tree: ``Workflow`` for workflows and
``Task`` for command line and expression tools. Descriptive fields are folded
into a synthesized ``Meta`` node so that metadata extraction works the same
way for every language.
"""

import logging
from typing import Any, Dict, Iterator, List, Optional

import yaml

from toolgraph_common.ast import Ast, AstList, Terminal
from toolgraph_common.errors import DescriptorSyntaxError

LOGGER = logging.getLogger(__name__)

UNIT_CLASSES = {
    "Workflow": "Workflow",
    "CommandLineTool": "Task",
    "ExpressionTool": "Task",
    "Operation": "Task",
}

# (list key, name key, email key) for each supported author vocabulary.
_AUTHOR_VOCABULARIES = (
    ("dct:creator", "foaf:name", "foaf:mbox"),
    ("s:author", "s:name", "s:email"),
)


def load_document(content: str) -> Dict[str, Any]:
    """Load a CWL document, raising ``DescriptorSyntaxError`` for bad input."""
    try:
        document = yaml.safe_load(content)
    except yaml.MarkedYAMLError as e:
        mark = e.problem_mark
        raise DescriptorSyntaxError(
            f"Invalid CWL: {e.problem}",
            line=mark.line + 1 if mark else None,
            column=mark.column + 1 if mark else None,
        ) from e
    except yaml.YAMLError as e:
        raise DescriptorSyntaxError(f"Invalid CWL: {e}") from e
    if not isinstance(document, dict):
        raise DescriptorSyntaxError("Invalid CWL: top level is not a mapping")
    return document


def process_objects(document: Dict[str, Any]) -> Iterator[Dict[str, Any]]:
    """Yield the process objects of a plain or packed (``$graph``) document."""
    graph = document.get("$graph")
    if isinstance(graph, list):
        for item in graph:
            if isinstance(item, dict):
                yield item
    else:
        yield document


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _text(value: Any) -> Optional[str]:
    if isinstance(value, list):
        value = "\n".join(str(v) for v in value if v is not None)
    if value is None:
        return None
    return str(value)


def _strip_mailto(email: str) -> str:
    return email[len("mailto:"):] if email.startswith("mailto:") else email


def _kv(key: str, value: str) -> Ast:
    return Ast("MetaKvPair", {"key": Terminal(key, "identifier"), "value": Terminal(value, "string")})


def build_meta(process: Dict[str, Any]) -> Ast:
    """Synthesize a ``Meta`` node from the descriptive fields of *process*."""
    attributes: Dict[str, Ast] = {}

    description = (
        _text(process.get("doc")) or _text(process.get("description")) or _text(process.get("label"))
    )
    if description:
        attributes["description"] = _kv("description", description)

    index = 0
    for list_key, name_key, email_key in _AUTHOR_VOCABULARIES:
        for person in _as_list(process.get(list_key)):
            if not isinstance(person, dict):
                continue
            name = _text(person.get(name_key))
            email = _text(person.get(email_key))
            if name:
                attributes[f"author_{index}"] = _kv("author", name)
            if email:
                attributes[f"email_{index}"] = _kv("email", _strip_mailto(email))
            index += 1
    return Ast("Meta", attributes)


def _step_nodes(process: Dict[str, Any]) -> AstList:
    steps = process.get("steps") or []
    if isinstance(steps, dict):
        steps = [dict(step, id=step_id) for step_id, step in steps.items() if isinstance(step, dict)]
    nodes = AstList()
    for step in steps:
        if not isinstance(step, dict):
            continue
        run = step.get("run")
        run_node = build_unit(run) if isinstance(run, dict) else Terminal(str(run or ""), "path")
        nodes.append(Ast("Step", {"id": Terminal(str(step.get("id", "")), "identifier"), "run": run_node}))
    return nodes


def build_unit(process: Dict[str, Any]) -> Optional[Ast]:
    """Translate one process object, or ``None`` when its class is not a process."""
    name = UNIT_CLASSES.get(str(process.get("class", "")))
    if name is None:
        return None
    return Ast(
        name,
        {
            "id": Terminal(str(process.get("id", "")), "identifier"),
            "class": Terminal(str(process["class"]), "class"),
            "meta": build_meta(process),
            "steps": _step_nodes(process),
        },
    )


def parse_cwl(content: str) -> Ast:
    """Parse CWL *content* into a ``Document`` whose body holds one unit per process."""
    document = load_document(content)
    body = AstList()
    for process in process_objects(document):
        unit = build_unit(process)
        if unit is None:
            LOGGER.debug(f"Skipping CWL object of class {process.get('class')!r}")
            continue
        body.append(unit)
    version = document.get("cwlVersion")
    return Ast(
        "Document",
        {"version": Terminal(str(version), "version") if version else None, "body": body},
    )
