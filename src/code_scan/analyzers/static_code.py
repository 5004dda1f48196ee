"""Static code analyzer: applies every enabled built-in rule in one walk.

The walk is depth-first in source order: children are visited sorted by
position and decorators are visited before the declaration they decorate.
Issues are reported as soon as they are detected, so the reporter receives
them in document order.

Rules that need a whole scope (unused parameters, unused private fields)
settle their verdict when the scope is entered and mark the offending nodes;
the mark is reported when the walk reaches that node.

Python rendition of the language constructs:
  isolation qualifier  - a decorator whose terminal name is ``isolated``
  public declaration   - name without a leading underscore (and listed in
                         ``__all__`` when the module declares one)
  object               - interface type: ``Protocol`` / ``ABC`` subclass
  panic on error       - process-terminating call inside an ``except`` block
"""

from __future__ import annotations

import ast
import logging
import sys
from typing import Iterable

from code_scan.analyzers.expressions import (
    compare_literals,
    int_literal,
    number_literal,
    same_expression,
)
from code_scan.core.context import Document, ScannerContext
from code_scan.rules import CoreRule

_logger = logging.getLogger(__name__)

_ISOLATION_QUALIFIER = "isolated"
_EXIT_EXCEPTION = "SystemExit"
_EXIT_BUILTINS = frozenset({"exit", "quit", _EXIT_EXCEPTION})
_EXIT_ATTRIBUTES = {
    "sys": frozenset({"exit"}),
    "os": frozenset({"_exit", "abort"}),
}
_INTERFACE_BASES = frozenset({"Protocol", "ABC"})
_INTERFACE_METACLASSES = frozenset({"ABCMeta"})
_STUB_DECORATORS = frozenset({"abstractmethod", "overload"})
_RECEIVER_FREE_DECORATORS = frozenset({"staticmethod"})

_ALWAYS_TRUE_OPS = (ast.Eq, ast.LtE, ast.GtE, ast.Is)
_ALWAYS_FALSE_OPS = (ast.NotEq, ast.Lt, ast.Gt, ast.IsNot)
_SELF_CANCELLING_OPS = (
    ast.Sub,
    ast.Div,
    ast.FloorDiv,
    ast.Mod,
    ast.BitXor,
    ast.BitAnd,
    ast.BitOr,
)
_ASSIGNABLE = (ast.Name, ast.Attribute, ast.Subscript, ast.Tuple, ast.List)
_TRIVIAL_RULES = frozenset(
    {
        CoreRule.OPERATION_ALWAYS_EVALUATES_TO_TRUE,
        CoreRule.OPERATION_ALWAYS_EVALUATES_TO_FALSE,
        CoreRule.OPERATION_ALWAYS_EVALUATES_TO_SELF_VALUE,
    }
)

_NO_POSITION = (sys.maxsize, sys.maxsize)

_FunctionNode = (ast.FunctionDef, ast.AsyncFunctionDef)
_ComprehensionNode = (ast.ListComp, ast.SetComp, ast.GeneratorExp, ast.DictComp)


# ── AST helpers ─────────────────────────────────────────────────────────


def _position(node: ast.AST) -> tuple[int, int]:
    """Sort key: own start, or the earliest positioned descendant."""
    lineno = getattr(node, "lineno", None)
    if lineno is not None:
        return (lineno, getattr(node, "col_offset", 0))
    return min(
        (
            (child.lineno, child.col_offset)
            for child in ast.walk(node)
            if getattr(child, "lineno", None) is not None
        ),
        default=_NO_POSITION,
    )


def _terminal_name(node: ast.AST | None) -> str | None:
    """``a.b.isolated`` -> ``isolated``; calls and subscripts are unwrapped."""
    if isinstance(node, ast.Call):
        return _terminal_name(node.func)
    if isinstance(node, ast.Subscript):
        return _terminal_name(node.value)
    if isinstance(node, ast.Attribute):
        return node.attr
    if isinstance(node, ast.Name):
        return node.id
    return None


def _decorator_names(node: ast.FunctionDef | ast.AsyncFunctionDef | ast.ClassDef) -> set[str]:
    return {name for name in map(_terminal_name, node.decorator_list) if name}


def _has_isolation_qualifier(node: ast.AST) -> bool:
    return _ISOLATION_QUALIFIER in _decorator_names(node)


def _is_interface(node: ast.ClassDef) -> bool:
    if any(_terminal_name(base) in _INTERFACE_BASES for base in node.bases):
        return True
    return any(
        kw.arg == "metaclass" and _terminal_name(kw.value) in _INTERFACE_METACLASSES
        for kw in node.keywords
    )


def _is_private(name: str) -> bool:
    return name.startswith("_") and not (name.startswith("__") and name.endswith("__"))


def _declared_all(module: ast.Module) -> frozenset[str] | None:
    """Names listed in a literal module-level ``__all__``, if any."""
    for stmt in module.body:
        targets: list[ast.expr] = []
        if isinstance(stmt, ast.Assign):
            targets, value = stmt.targets, stmt.value
        elif isinstance(stmt, ast.AnnAssign) and stmt.value is not None:
            targets, value = [stmt.target], stmt.value
        if not any(isinstance(t, ast.Name) and t.id == "__all__" for t in targets):
            continue
        if isinstance(value, (ast.List, ast.Tuple)):
            return frozenset(
                elt.value
                for elt in value.elts
                if isinstance(elt, ast.Constant) and isinstance(elt.value, str)
            )
    return None


def _is_process_exit(func: ast.expr) -> bool:
    if isinstance(func, ast.Name):
        return func.id in _EXIT_BUILTINS
    if isinstance(func, ast.Attribute) and isinstance(func.value, ast.Name):
        return func.attr in _EXIT_ATTRIBUTES.get(func.value.id, ())
    return False


def _is_invalid_range(call: ast.Call) -> bool:
    """``range(...)`` whose literal bounds can never yield a value."""
    if not (isinstance(call.func, ast.Name) and call.func.id == "range"):
        return False
    if call.keywords or not 1 <= len(call.args) <= 3:
        return False
    values = [int_literal(arg) for arg in call.args]
    if any(value is None for value in values):
        return False
    if len(values) == 1:
        return values[0] <= 0
    start, stop = values[0], values[1]
    step = values[2] if len(values) == 3 else 1
    if step == 0:
        return True
    return start >= stop if step > 0 else start <= stop


# ── trivial operations ──────────────────────────────────────────────────


def _is_identity_arithmetic(node: ast.BinOp) -> bool:
    """``x + 0``, ``x * 1``, ``x * 0``, ``x ** 1`` and friends."""
    left = number_literal(node.left)
    right = number_literal(node.right)
    if left is not None and right is not None:
        return False
    op = node.op
    if isinstance(op, (ast.Add, ast.BitOr, ast.BitXor, ast.BitAnd)):
        return left == 0 or right == 0
    if isinstance(op, ast.Mult):
        return left in (0, 1) or right in (0, 1)
    if isinstance(op, (ast.Sub, ast.LShift, ast.RShift)):
        return right == 0
    if isinstance(op, ast.Div):
        return right == 1
    if isinstance(op, ast.Pow):
        return right in (0, 1)
    return False


def trivial_outcome(node: ast.AST) -> CoreRule | None:
    """Classify an expression whose result is known from its shape alone."""
    if isinstance(node, ast.Compare):
        if len(node.ops) != 1:
            return None
        op, right = node.ops[0], node.comparators[0]
        if same_expression(node.left, right):
            if isinstance(op, _ALWAYS_TRUE_OPS):
                return CoreRule.OPERATION_ALWAYS_EVALUATES_TO_TRUE
            if isinstance(op, _ALWAYS_FALSE_OPS):
                return CoreRule.OPERATION_ALWAYS_EVALUATES_TO_FALSE
            return None
        result = compare_literals(op, node.left, right)
        if result is None:
            return None
        return (
            CoreRule.OPERATION_ALWAYS_EVALUATES_TO_TRUE
            if result
            else CoreRule.OPERATION_ALWAYS_EVALUATES_TO_FALSE
        )
    if isinstance(node, ast.BinOp):
        if isinstance(node.op, _SELF_CANCELLING_OPS) and same_expression(
            node.left, node.right
        ):
            return CoreRule.OPERATION_ALWAYS_EVALUATES_TO_SELF_VALUE
        if _is_identity_arithmetic(node):
            return CoreRule.OPERATION_ALWAYS_EVALUATES_TO_SELF_VALUE
        return None
    if isinstance(node, ast.BoolOp):
        first, rest = node.values[0], node.values[1:]
        if rest and all(same_expression(first, other) for other in rest):
            return CoreRule.OPERATION_ALWAYS_EVALUATES_TO_SELF_VALUE
        return None
    if isinstance(node, ast.IfExp) and same_expression(node.body, node.orelse):
        return CoreRule.OPERATION_ALWAYS_EVALUATES_TO_SELF_VALUE
    return None


# ── parameter usage ─────────────────────────────────────────────────────


def _parameters(args: ast.arguments) -> list[ast.arg]:
    params = [*args.posonlyargs, *args.args]
    if args.vararg is not None:
        params.append(args.vararg)
    params.extend(args.kwonlyargs)
    if args.kwarg is not None:
        params.append(args.kwarg)
    return params


def _outer_parts(node: ast.FunctionDef | ast.AsyncFunctionDef | ast.Lambda) -> list[ast.AST]:
    """Sub-expressions of a nested function evaluated in the enclosing scope."""
    parts: list[ast.AST] = [*node.args.defaults]
    parts.extend(d for d in node.args.kw_defaults if d is not None)
    if isinstance(node, _FunctionNode):
        parts.extend(node.decorator_list)
        parts.extend(a.annotation for a in _parameters(node.args) if a.annotation)
        if node.returns is not None:
            parts.append(node.returns)
    return parts


def _local_bindings(node: ast.FunctionDef | ast.AsyncFunctionDef | ast.Lambda) -> set[str]:
    """Names bound in the function's own scope (shadowing the enclosing one)."""
    names: set[str] = set()
    nonlocal_names: set[str] = set()
    stack: list[ast.AST] = list(node.body) if isinstance(node.body, list) else [node.body]
    while stack:
        current = stack.pop()
        if isinstance(current, ast.Nonlocal):
            nonlocal_names.update(current.names)
            continue
        if isinstance(current, ast.Global):
            names.update(current.names)
            continue
        if isinstance(current, (*_FunctionNode, ast.ClassDef)):
            names.add(current.name)
            continue
        if isinstance(current, (ast.Lambda, *_ComprehensionNode)):
            continue
        if isinstance(current, ast.Name) and isinstance(current.ctx, (ast.Store, ast.Del)):
            names.add(current.id)
        elif isinstance(current, (ast.Import, ast.ImportFrom)):
            names.update((alias.asname or alias.name).split(".")[0] for alias in current.names)
        elif isinstance(current, ast.ExceptHandler) and current.name:
            names.add(current.name)
        elif isinstance(current, (ast.MatchAs, ast.MatchStar)) and current.name:
            names.add(current.name)
        elif isinstance(current, ast.MatchMapping) and current.rest:
            names.add(current.rest)
        stack.extend(ast.iter_child_nodes(current))
    return names - nonlocal_names


def _comprehension_targets(node: ast.AST) -> set[str]:
    return {
        target.id
        for generator in node.generators
        for target in ast.walk(generator.target)
        if isinstance(target, ast.Name)
    }


def _refers_to(name: str, node: ast.AST) -> bool:
    """True if *node* reads or writes the binding *name* of the enclosing scope."""
    if isinstance(node, ast.Name):
        return node.id == name
    if isinstance(node, ast.Nonlocal):
        return name in node.names
    if isinstance(node, (*_FunctionNode, ast.Lambda)):
        if _is_referenced(name, _outer_parts(node)):
            return True
        params = {a.arg for a in _parameters(node.args)}
        if name in params or name in _local_bindings(node):
            return False
        body = node.body if isinstance(node.body, list) else [node.body]
        return _is_referenced(name, body)
    if isinstance(node, _ComprehensionNode) and name in _comprehension_targets(node):
        return _refers_to(name, node.generators[0].iter)
    return _is_referenced(name, ast.iter_child_nodes(node))


def _is_referenced(name: str, nodes: Iterable[ast.AST]) -> bool:
    return any(_refers_to(name, node) for node in nodes)


def _is_stub(func: ast.FunctionDef | ast.AsyncFunctionDef) -> bool:
    """Abstract/overload declarations and bodies of only ``...``, docstring or NotImplementedError."""
    if _decorator_names(func) & _STUB_DECORATORS:
        return True
    for stmt in func.body:
        if isinstance(stmt, ast.Expr) and isinstance(stmt.value, ast.Constant):
            if stmt.value.value is Ellipsis or isinstance(stmt.value.value, str):
                continue
        if isinstance(stmt, ast.Raise) and _terminal_name(stmt.exc) == "NotImplementedError":
            continue
        return False
    return True


def _has_receiver(func: ast.FunctionDef | ast.AsyncFunctionDef) -> bool:
    return not (_decorator_names(func) & _RECEIVER_FREE_DECORATORS)


def unused_parameters(
    func: ast.FunctionDef | ast.AsyncFunctionDef, *, is_method: bool = False
) -> list[ast.arg]:
    """Parameters of *func* never read or written in its body."""
    if _is_stub(func):
        return []
    params = _parameters(func.args)
    positional = [*func.args.posonlyargs, *func.args.args]
    if is_method and positional and _has_receiver(func):
        params = [p for p in params if p is not positional[0]]
    return [
        param
        for param in params
        if not param.arg.startswith("_") and not _is_referenced(param.arg, func.body)
    ]


# ── private fields ──────────────────────────────────────────────────────


def _is_init_field(stmt: ast.AnnAssign) -> bool:
    """A dataclass field that becomes a constructor parameter."""
    if _terminal_name(stmt.annotation) == "ClassVar":
        return False
    value = stmt.value
    if isinstance(value, ast.Call) and _terminal_name(value.func) == "field":
        return not any(
            kw.arg == "init" and isinstance(kw.value, ast.Constant) and kw.value.value is False
            for kw in value.keywords
        )
    return True


def _stored_names(target: ast.expr) -> list[ast.Name]:
    return [
        node
        for node in ast.walk(target)
        if isinstance(node, ast.Name) and isinstance(node.ctx, ast.Store)
    ]


def unused_private_fields(cls: ast.ClassDef) -> list[ast.expr]:
    """First declaring target of every private field no method references."""
    candidates: list[tuple[str, ast.expr]] = []
    skip_annotations = "dataclass" in _decorator_names(cls)
    methods = [stmt for stmt in cls.body if isinstance(stmt, _FunctionNode)]

    for stmt in cls.body:
        if isinstance(stmt, ast.Assign):
            for target in stmt.targets:
                candidates.extend((n.id, n) for n in _stored_names(target))
        elif isinstance(stmt, ast.AnnAssign) and isinstance(stmt.target, ast.Name):
            if skip_annotations and _is_init_field(stmt):
                continue
            candidates.append((stmt.target.id, stmt.target))

    for method in methods:
        positional = [*method.args.posonlyargs, *method.args.args]
        if not positional or not _has_receiver(method):
            continue
        receiver = positional[0].arg
        for node in ast.walk(method):
            if (
                isinstance(node, ast.Attribute)
                and isinstance(node.ctx, ast.Store)
                and isinstance(node.value, ast.Name)
                and node.value.id == receiver
            ):
                candidates.append((node.attr, node))

    declarations: dict[str, ast.expr] = {}
    for name, node in sorted(candidates, key=lambda item: _position(item[1])):
        if _is_private(name) and name not in declarations:
            declarations[name] = node
    if not declarations:
        return []

    # Class-body expressions may read a field by its bare name.
    used: set[str] = {
        node.id
        for stmt in cls.body
        if not isinstance(stmt, _FunctionNode)
        for node in ast.walk(stmt)
        if isinstance(node, ast.Name) and isinstance(node.ctx, ast.Load) and node.id in declarations
    }
    for method in methods:
        augmented = {
            id(node.target) for node in ast.walk(method) if isinstance(node, ast.AugAssign)
        }
        for node in ast.walk(method):
            if not isinstance(node, ast.Attribute) or node.attr not in declarations:
                continue
            if isinstance(node.ctx, (ast.Load, ast.Del)) or id(node) in augmented:
                used.add(node.attr)
    return [node for name, node in declarations.items() if name not in used]


# ── Analyzer class ──────────────────────────────────────────────────────


class StaticCodeAnalyzer(ast.NodeVisitor):
    """Walks one document once, reporting built-in rule violations.

    Rules:
      python:1   process-terminating call inside an except block
      python:2   unused function parameter
      python:3-6 public function / method / class / object without @isolated
      python:7-9 operation always true / always false / always the same value
      python:10  self assignment
      python:11  unused private class field
      python:12  invalid range expression
    """

    def __init__(self, document: Document, context: ScannerContext) -> None:
        self._document = document
        self._context = context
        self._enabled = frozenset(rule for rule in CoreRule if context.is_enabled(rule))
        self._marked: dict[int, CoreRule] = {}
        self._scopes: list[ast.AST] = []
        self._handler_depth = 0
        self._public_names: frozenset[str] | None = None

    def analyze(self) -> None:
        if not self._enabled:
            return
        _logger.debug("analyzing %s with %d rule(s)", self._document.name, len(self._enabled))
        self.visit(self._document.tree)

    # ── traversal ───────────────────────────────────────────────────

    def visit(self, node: ast.AST) -> None:
        rule = self._marked.pop(id(node), None)
        if rule is not None:
            self._report(node, rule)
        super().visit(node)

    def generic_visit(self, node: ast.AST) -> None:
        self._visit_children(node)

    def _visit_children(self, node: ast.AST, skip: Iterable[ast.AST] = ()) -> None:
        skipped = {id(n) for n in skip}
        children = [c for c in ast.iter_child_nodes(node) if id(c) not in skipped]
        for child in sorted(children, key=_position):
            self.visit(child)

    def _visit_scope(self, node: ast.AST, skip: Iterable[ast.AST] = ()) -> None:
        saved_depth = self._handler_depth
        self._handler_depth = 0
        self._scopes.append(node)
        try:
            self._visit_children(node, skip)
        finally:
            self._scopes.pop()
            self._handler_depth = saved_depth

    def _report(self, node: ast.AST, rule: CoreRule) -> None:
        self._context.report_issue(self._document, node, rule)

    def _check(self, rule: CoreRule | None, node: ast.AST) -> None:
        if rule is not None and rule in self._enabled:
            self._report(node, rule)

    # ── declarations ────────────────────────────────────────────────

    def visit_Module(self, node: ast.Module) -> None:
        self._public_names = _declared_all(node)
        self.generic_visit(node)

    def visit_FunctionDef(self, node: ast.FunctionDef | ast.AsyncFunctionDef) -> None:
        for decorator in node.decorator_list:
            self.visit(decorator)
        self._check(self._isolation_rule(node), node)
        if CoreRule.UNUSED_FUNCTION_PARAMETER in self._enabled:
            is_method = bool(self._scopes) and isinstance(self._scopes[-1], ast.ClassDef)
            for param in unused_parameters(node, is_method=is_method):
                self._marked[id(param)] = CoreRule.UNUSED_FUNCTION_PARAMETER
        self._visit_scope(node, skip=node.decorator_list)

    visit_AsyncFunctionDef = visit_FunctionDef

    def visit_Lambda(self, node: ast.Lambda) -> None:
        self._visit_scope(node)

    def visit_ClassDef(self, node: ast.ClassDef) -> None:
        for decorator in node.decorator_list:
            self.visit(decorator)
        self._check(self._isolation_rule(node), node)
        if CoreRule.UNUSED_PRIVATE_CLASS_FIELD in self._enabled:
            for target in unused_private_fields(node):
                self._marked[id(target)] = CoreRule.UNUSED_PRIVATE_CLASS_FIELD
        self._visit_scope(node, skip=node.decorator_list)

    def _is_public(self, name: str) -> bool:
        if name.startswith("_"):
            return False
        return self._public_names is None or name in self._public_names

    def _isolation_rule(self, node: ast.AST) -> CoreRule | None:
        if _has_isolation_qualifier(node):
            return None
        if not self._scopes:
            if not self._is_public(node.name):
                return None
            if isinstance(node, ast.ClassDef):
                if _is_interface(node):
                    return CoreRule.PUBLIC_NON_ISOLATED_OBJECT
                return CoreRule.PUBLIC_NON_ISOLATED_CLASS
            return CoreRule.PUBLIC_NON_ISOLATED_FUNCTION
        owner = self._scopes[-1]
        if (
            len(self._scopes) == 1
            and isinstance(owner, ast.ClassDef)
            and isinstance(node, _FunctionNode)
            and self._is_public(owner.name)
            and not _has_isolation_qualifier(owner)
            and not node.name.startswith("_")
        ):
            return CoreRule.PUBLIC_NON_ISOLATED_METHOD
        return None

    # ── statements ──────────────────────────────────────────────────

    def visit_ExceptHandler(self, node: ast.ExceptHandler) -> None:
        self._handler_depth += 1
        try:
            self.generic_visit(node)
        finally:
            self._handler_depth -= 1

    def visit_Raise(self, node: ast.Raise) -> None:
        # ``raise SystemExit(...)`` is a call and is handled by visit_Call.
        if (
            self._handler_depth
            and isinstance(node.exc, (ast.Name, ast.Attribute))
            and _terminal_name(node.exc) == _EXIT_EXCEPTION
        ):
            self._check(CoreRule.AVOID_EXIT_ON_ERROR, node.exc)
        self.generic_visit(node)

    def visit_Assign(self, node: ast.Assign) -> None:
        if (
            CoreRule.SELF_ASSIGNMENT in self._enabled
            and len(node.targets) == 1
            and isinstance(node.targets[0], _ASSIGNABLE)
            and same_expression(node.targets[0], node.value)
        ):
            self._report(node, CoreRule.SELF_ASSIGNMENT)
        self.generic_visit(node)

    def visit_AnnAssign(self, node: ast.AnnAssign) -> None:
        if (
            CoreRule.SELF_ASSIGNMENT in self._enabled
            and node.value is not None
            and same_expression(node.target, node.value)
        ):
            self._report(node, CoreRule.SELF_ASSIGNMENT)
        self.generic_visit(node)

    # ── expressions ─────────────────────────────────────────────────

    def visit_Call(self, node: ast.Call) -> None:
        if self._handler_depth and _is_process_exit(node.func):
            self._check(CoreRule.AVOID_EXIT_ON_ERROR, node)
        if CoreRule.INVALID_RANGE_EXPRESSION in self._enabled and _is_invalid_range(node):
            self._report(node, CoreRule.INVALID_RANGE_EXPRESSION)
        self.generic_visit(node)

    def _visit_operation(self, node: ast.expr) -> None:
        if self._enabled & _TRIVIAL_RULES:
            self._check(trivial_outcome(node), node)
        self.generic_visit(node)

    visit_Compare = _visit_operation
    visit_BinOp = _visit_operation
    visit_BoolOp = _visit_operation
    visit_IfExp = _visit_operation
