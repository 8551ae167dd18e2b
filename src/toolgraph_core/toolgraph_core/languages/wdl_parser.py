# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""WDL parser adapter.

Parses WDL (draft-2 and 1.x) with a Lark LALR grammar and transforms the
parse tree into the shared ``toolgraph_common.ast`` model. Top-level ``task``
and ``workflow`` blocks become ``Task`` and ``Workflow`` nodes inside the
document ``body``; imports live under ``imports``.
"""

from functools import lru_cache
from typing import Any, List, Optional

from lark import Lark, Token, Transformer
from lark.exceptions import (
    LarkError,
    UnexpectedCharacters,
    UnexpectedEOF,
    UnexpectedInput,
    UnexpectedToken,
)

from toolgraph_common.ast import Ast, AstList, Terminal
from toolgraph_common.errors import DescriptorSyntaxError


def _nested_braces(depth: int) -> str:
    """Regex matching a ``{...}`` block with up to *depth* levels of nesting."""
    inner = r"[^{}]*"
    for _ in range(depth):
        inner = r"(?:[^{}]|\{" + inner + r"\})*"
    return r"\{" + inner + r"\}"


_COMMAND_RE = r"/command\s*(?:<<<[\s\S]*?>>>|" + _nested_braces(6) + ")/"

_STRING_BODY = r"(?:[^{q}\\$~\n]|\\.|[$~]\{{[^}}\n]*\}}|[$~](?!\{{))*"
_STRING_RE = "/\"{dq}\"/ | /'{sq}'/".format(
    dq=_STRING_BODY.format(q='"'), sq=_STRING_BODY.format(q="'")
)

WDL_GRAMMAR = r"""
start: version? _document_element*

version: "version" VERSION_NUMBER

_document_element: import_doc | task | workflow | struct

import_doc: "import" STRING ["as" CNAME] import_alias*
import_alias: "alias" CNAME "as" CNAME

struct: "struct" CNAME "{" declaration* "}"

task: "task" CNAME "{" _task_element* "}"
_task_element: declaration | inputs | outputs | command | runtime | requirements
             | hints | meta | parameter_meta

workflow: "workflow" CNAME "{" _workflow_element* "}"
_workflow_element: declaration | inputs | outputs | call | scatter | conditional
                 | meta | parameter_meta

inputs: "input" "{" declaration* "}"
outputs: "output" "{" _output_element* "}"
_output_element: declaration | output_reference
output_reference: CNAME ("." (CNAME | STAR))+

declaration: type CNAME ["=" expr]
type: CNAME type_params? TYPE_POSTFIX*
type_params: "[" type ("," type)* "]"

command: COMMAND

runtime: "runtime" "{" runtime_kv* "}"
requirements: "requirements" "{" runtime_kv* "}"
hints: "hints" "{" runtime_kv* "}"
runtime_kv: CNAME ":" expr

meta: "meta" "{" meta_kv* "}"
parameter_meta: "parameter_meta" "{" meta_kv* "}"
meta_kv: CNAME ":" meta_value
meta_object_kv: (CNAME | STRING) ":" meta_value

?meta_value: STRING -> meta_string
    | MINUS? INT -> meta_scalar
    | MINUS? FLOAT -> meta_scalar
    | "true" -> meta_true
    | "false" -> meta_false
    | "null" -> meta_null
    | "[" [meta_value ("," meta_value)* [","]] "]" -> meta_array
    | "{" [meta_object_kv ("," meta_object_kv)* [","]] "}" -> meta_object

call: "call" qualified_name ["as" CNAME] call_after* [call_body]
call_after: "after" CNAME
qualified_name: CNAME ("." CNAME)*
call_body: "{" ["input" ":"] [call_input ("," call_input)* [","]] "}"
call_input: CNAME ["=" expr]

scatter: "scatter" "(" CNAME "in" expr ")" "{" _workflow_element* "}"
conditional: "if" "(" expr ")" "{" _workflow_element* "}"

?expr: expr_or
    | "if" expr "then" expr "else" expr -> ternary
?expr_or: expr_and
    | expr_or OR expr_and -> binop
?expr_and: expr_cmp
    | expr_and AND expr_cmp -> binop
?expr_cmp: expr_add
    | expr_cmp CMP_OP expr_add -> binop
?expr_add: expr_mul
    | expr_add (PLUS | MINUS) expr_mul -> binop
?expr_mul: expr_unary
    | expr_mul (STAR | MUL_OP) expr_unary -> binop
?expr_unary: expr_postfix
    | (NOT | PLUS | MINUS) expr_unary -> unop
?expr_postfix: expr_core
    | expr_postfix "[" expr "]" -> index
    | expr_postfix "." CNAME -> member
?expr_core: STRING -> string
    | INT -> integer
    | FLOAT -> float
    | "true" -> true
    | "false" -> false
    | "None" -> none
    | CNAME -> identifier
    | CNAME "(" [expr ("," expr)*] ")" -> apply
    | "(" expr ")"
    | "(" expr "," expr ")" -> pair
    | "[" [expr ("," expr)* [","]] "]" -> array
    | "{" [map_kv ("," map_kv)* [","]] "}" -> map
    | "object" "{" [object_kv ("," object_kv)* [","]] "}" -> object
map_kv: expr ":" expr
object_kv: CNAME ":" expr

OR: "||"
AND: "&&"
CMP_OP: "==" | "!=" | "<=" | ">=" | "<" | ">"
PLUS: "+"
MINUS: "-"
STAR: "*"
MUL_OP: "/" | "%%"
NOT: "!"
TYPE_POSTFIX: /[?+]/

COMMAND.2: %(command)s
STRING: %(string)s
FLOAT: /\d+\.\d*(?:[eE][+-]?\d+)?/ | /\d+[eE][+-]?\d+/
INT: /\d+/
VERSION_NUMBER: /[\w.\-]+/
COMMENT: /#[^\n]*/

%%import common.CNAME
%%import common.WS
%%ignore WS
%%ignore COMMENT
""" % {"command": _COMMAND_RE, "string": _STRING_RE}

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", '"': '"', "'": "'"}


def unquote(text: str) -> str:
    """Strip the quotes of a WDL string literal and resolve simple escapes."""
    body = text[1:-1]
    if "\\" not in body:
        return body
    out: List[str] = []
    chars = iter(body)
    for ch in chars:
        if ch == "\\":
            nxt = next(chars, "")
            out.append(_ESCAPES.get(nxt, "\\" + nxt))
        else:
            out.append(ch)
    return "".join(out)


def _terminal(token: Token, kind: Optional[str] = None, text: Optional[str] = None) -> Terminal:
    return Terminal(
        source_string=str(token) if text is None else text,
        kind=kind or token.type.lower(),
        line=getattr(token, "line", None),
    )


def _present(children: List[Any]) -> List[Any]:
    return [c for c in children if c is not None]


def _asts(children: List[Any], *names: str) -> AstList:
    return AstList([c for c in children if isinstance(c, Ast) and (not names or c.name in names)])


class WdlTreeTransformer(Transformer):
    """Turn the Lark parse tree into ``Ast``/``AstList``/``Terminal`` nodes."""

    def start(self, children):
        version = None
        if children and isinstance(children[0], Terminal):
            version = children[0]
            children = children[1:]
        return Ast(
            "Document",
            {
                "version": version,
                "imports": _asts(children, "Import"),
                "body": _asts(children, "Task", "Workflow", "Struct"),
            },
        )

    def version(self, children):
        return _terminal(children[0], "version")

    def import_doc(self, children):
        uri, namespace, *aliases = children
        return Ast(
            "Import",
            {
                "uri": _terminal(uri, "string", unquote(uri)),
                "namespace": _terminal(namespace, "identifier") if namespace else None,
                "aliases": AstList(aliases),
            },
        )

    def import_alias(self, children):
        old, new = children
        return Ast("ImportAlias", {"old_name": _terminal(old), "new_name": _terminal(new)})

    def struct(self, children):
        name, *members = children
        return Ast("Struct", {"name": _terminal(name, "identifier"), "members": AstList(members)})

    def task(self, children):
        name, *sections = children
        return Ast("Task", {"name": _terminal(name, "identifier"), "sections": AstList(sections)})

    def workflow(self, children):
        name, *body = children
        return Ast("Workflow", {"name": _terminal(name, "identifier"), "body": AstList(body)})

    def inputs(self, children):
        return Ast("Inputs", {"declarations": AstList(children)})

    def outputs(self, children):
        return Ast("Outputs", {"declarations": AstList(children)})

    def output_reference(self, children):
        text = ".".join(str(c) for c in children)
        return Ast("WorkflowOutputReference", {"reference": _terminal(children[0], "reference", text)})

    def declaration(self, children):
        decl_type, name, expression = children
        return Ast(
            "Declaration",
            {"type": decl_type, "name": _terminal(name, "identifier"), "expression": expression},
        )

    def type(self, children):
        text = str(children[0])
        line = getattr(children[0], "line", None)
        for child in children[1:]:
            text += child.source_string if isinstance(child, Terminal) else str(child)
        return Terminal(text, "type", line)

    def type_params(self, children):
        return Terminal("[" + ", ".join(c.source_string for c in children) + "]", "type")

    def command(self, children):
        return Ast("RawCommand", {"text": _terminal(children[0], "command")})

    def _runtime(self, name, children):
        return Ast(name, {"map": AstList(children)})

    def runtime(self, children):
        return self._runtime("Runtime", children)

    def requirements(self, children):
        return self._runtime("Requirements", children)

    def hints(self, children):
        return self._runtime("Hints", children)

    def runtime_kv(self, children):
        key, value = children
        return Ast("RuntimeAttribute", {"key": _terminal(key, "identifier"), "value": value})

    def meta(self, children):
        return Ast("Meta", {"map": AstList(children)})

    def parameter_meta(self, children):
        return Ast("ParameterMeta", {"map": AstList(children)})

    def meta_kv(self, children):
        key, value = children
        return Ast("MetaKvPair", {"key": _terminal(key, "identifier"), "value": value})

    def meta_object_kv(self, children):
        key, value = children
        text = unquote(key) if key.type == "STRING" else str(key)
        return Ast("MetaKvPair", {"key": _terminal(key, "identifier", text), "value": value})

    def meta_string(self, children):
        return _terminal(children[0], "string", unquote(children[0]))

    def meta_scalar(self, children):
        return _terminal(children[-1], text="".join(str(c) for c in children))

    def meta_true(self, children):
        return Terminal("true", "boolean")

    def meta_false(self, children):
        return Terminal("false", "boolean")

    def meta_null(self, children):
        return Terminal("null", "null")

    def meta_array(self, children):
        return Ast("MetaArray", {"values": AstList(_present(children))})

    def meta_object(self, children):
        return Ast("MetaObject", {"map": AstList(_present(children))})

    def call(self, children):
        task, alias, *rest = children
        after = [c for c in rest if isinstance(c, Terminal)]
        body = next((c for c in rest if isinstance(c, AstList)), AstList())
        return Ast(
            "Call",
            {
                "task": task,
                "alias": _terminal(alias, "identifier") if alias else None,
                "after": AstList(after),
                "inputs": body,
            },
        )

    def call_after(self, children):
        return _terminal(children[0], "identifier")

    def qualified_name(self, children):
        return Terminal(".".join(str(c) for c in children), "fqn", getattr(children[0], "line", None))

    def call_body(self, children):
        return AstList(_present(children))

    def call_input(self, children):
        key, value = children
        return Ast("CallInput", {"key": _terminal(key, "identifier"), "value": value})

    def scatter(self, children):
        item, collection, *body = children
        return Ast(
            "Scatter",
            {"item": _terminal(item, "identifier"), "collection": collection, "body": AstList(body)},
        )

    def conditional(self, children):
        expression, *body = children
        return Ast("If", {"expression": expression, "body": AstList(body)})

    def ternary(self, children):
        cond, iftrue, iffalse = children
        return Ast("TernaryIf", {"cond": cond, "iftrue": iftrue, "iffalse": iffalse})

    def binop(self, children):
        lhs, op, rhs = children
        return Ast("BinaryOp", {"op": _terminal(op, "operator"), "lhs": lhs, "rhs": rhs})

    def unop(self, children):
        op, expression = children
        return Ast("UnaryOp", {"op": _terminal(op, "operator"), "expression": expression})

    def index(self, children):
        lhs, rhs = children
        return Ast("ArrayOrMapLookup", {"lhs": lhs, "rhs": rhs})

    def member(self, children):
        lhs, rhs = children
        return Ast("MemberAccess", {"lhs": lhs, "rhs": _terminal(rhs, "identifier")})

    def string(self, children):
        return _terminal(children[0], "string", unquote(children[0]))

    def integer(self, children):
        return _terminal(children[0], "integer")

    def float(self, children):
        return _terminal(children[0], "float")

    def true(self, children):
        return Terminal("true", "boolean")

    def false(self, children):
        return Terminal("false", "boolean")

    def none(self, children):
        return Terminal("None", "null")

    def identifier(self, children):
        return _terminal(children[0], "identifier")

    def apply(self, children):
        name, *params = children
        return Ast(
            "FunctionCall",
            {"name": _terminal(name, "identifier"), "params": AstList(_present(params))},
        )

    def pair(self, children):
        return Ast("TupleLiteral", {"values": AstList(children)})

    def array(self, children):
        return Ast("ArrayLiteral", {"values": AstList(_present(children))})

    def map(self, children):
        return Ast("MapLiteral", {"map": AstList(_present(children))})

    def map_kv(self, children):
        key, value = children
        return Ast("MapLiteralKv", {"key": key, "value": value})

    def object(self, children):
        return Ast("ObjectLiteral", {"map": AstList(_present(children))})

    def object_kv(self, children):
        key, value = children
        return Ast("ObjectKV", {"key": _terminal(key, "identifier"), "value": value})


def _describe(error: UnexpectedInput) -> str:
    if isinstance(error, UnexpectedToken):
        return f"unexpected token {str(error.token)!r}"
    if isinstance(error, UnexpectedCharacters):
        return f"unexpected character {error.char!r}"
    if isinstance(error, UnexpectedEOF):
        return "unexpected end of file"
    return error.__class__.__name__


@lru_cache(maxsize=1)
def _parser() -> Lark:
    return Lark(WDL_GRAMMAR, parser="lalr", lexer="contextual", maybe_placeholders=True)


def parse_wdl(content: str) -> Ast:
    """Parse WDL *content* into a ``Document`` node.

    Raises:
        DescriptorSyntaxError: the content is not valid WDL.
    """
    try:
        tree = _parser().parse(content)
    except UnexpectedInput as e:
        line = e.line if isinstance(e.line, int) and e.line > 0 else None
        column = e.column if line is not None else None
        raise DescriptorSyntaxError(f"Invalid WDL: {_describe(e)}", line=line, column=column) from e
    except LarkError as e:
        raise DescriptorSyntaxError(f"Invalid WDL: {e}") from e
    return WdlTreeTransformer().transform(tree)
