"""tree-sitterの具象構文木をGo構文モデルに変換する。

変換と同時にスコープを追跡し、識別子の出現を宣言に結び付ける。
括弧は取り除き、コメントは構文木には残さない。
"""

from contextlib import contextmanager
from typing import Dict, FrozenSet, Iterator, List, Optional, Tuple
import logging
import re

from ..models.symbols import DeclKind, Declaration
from ..models.syntax import (
    BinaryExpression,
    CallExpression,
    ChanDir,
    ChannelTypeExpression,
    CommClause,
    DefaultClause,
    Identifier,
    Literal,
    LiteralKind,
    Other,
    ReceiveExpression,
    SelectorExpression,
    SendOperation,
    SyntaxNode,
    TypeAssertion,
    WaitConstruct,
)
from .symbols import Scope, SymbolTable, default_package_name

logger = logging.getLogger(__name__)


LITERAL_KINDS: Dict[str, LiteralKind] = {
    "int_literal": LiteralKind.INT,
    "float_literal": LiteralKind.FLOAT,
    "imaginary_literal": LiteralKind.IMAG,
    "rune_literal": LiteralKind.RUNE,
    "interpreted_string_literal": LiteralKind.STRING,
    "raw_string_literal": LiteralKind.STRING,
}

# 新しいスコープを開く構文
SCOPED_NODES = {
    "block",
    "if_statement",
    "for_statement",
    "expression_switch_statement",
    "type_switch_statement",
    "expression_case",
    "type_case",
    "default_case",
}

# 名前解決しない識別子系ノード
UNRESOLVED_NAMES = {
    "type_identifier",
    "field_identifier",
    "package_identifier",
    "label_name",
}

_NOLINT = re.compile(r"^//\s?nolint(?::([A-Za-z0-9_\-,]+))?(?:\s|$)")


def _named(node) -> List:
    """コメントを除いた名前付きの子ノード。"""
    return [child for child in node.named_children if child.type != "comment"]


def _has_token(node, token: str) -> bool:
    return any(not child.is_named and child.type == token for child in node.children)


class GoLowering:
    """1ファイル分の変換器。"""

    def __init__(self, source: bytes, symbols: SymbolTable):
        """変換器を初期化する。

        Args:
            source: ソースのバイト列
            symbols: 解決結果を書き込むシンボル表
        """
        self.source = source
        self.symbols = symbols
        self.scope: Scope = symbols.file_scope

        self._handlers = {
            "select_statement": self._lower_select,
            "send_statement": self._lower_send,
            "unary_expression": self._lower_unary,
            "call_expression": self._lower_call,
            "channel_type": self._lower_channel_type,
            "selector_expression": self._lower_selector,
            "qualified_type": self._lower_qualified_type,
            "type_assertion_expression": self._lower_type_assertion,
            "binary_expression": self._lower_binary,
            "parenthesized_expression": self._lower_parenthesized,
            "parenthesized_type": self._lower_parenthesized,
            "identifier": self._lower_identifier,
            "function_declaration": self._lower_function,
            "method_declaration": self._lower_function,
            "func_literal": self._lower_function,
            "short_var_declaration": self._lower_short_var_declaration,
            "var_spec": self._lower_value_spec,
            "const_spec": self._lower_value_spec,
            "range_clause": self._lower_range_clause,
            "import_declaration": self._lower_import_declaration,
        }

    def lower_file(self, root) -> SyntaxNode:
        """ファイル全体を変換する。

        パッケージレベルの宣言は出現順に関係なく参照できるため、
        先にインポートとトップレベル宣言を登録してから本体を変換する。

        Args:
            root: tree-sitterのsource_fileノード

        Returns:
            変換後のルートノード
        """
        self._collect_package_scope(root)
        return self._lower(root)

    # ------------------------------------------------------------------
    # パッケージスコープ
    # ------------------------------------------------------------------

    def _collect_package_scope(self, root) -> None:
        for child in root.named_children:
            if child.type == "import_declaration":
                self._declare_imports(child)

        value_specs = []
        for child in root.named_children:
            if child.type == "function_declaration":
                name = child.child_by_field_name("name")
                if name is None:
                    continue
                self.scope.declare(Declaration(
                    kind=DeclKind.FUNCTION,
                    name=self._text(name),
                    pos=name.start_byte,
                    type_expr=self._result_type(child.child_by_field_name("result")),
                ))
            elif child.type in ("var_declaration", "const_declaration"):
                for spec in self._value_specs(child):
                    value_specs.append(spec)
                    self._declare_package_values(spec, with_values=False)

        # 初期化式は全ての名前を登録した後で変換する
        for spec in value_specs:
            self._declare_package_values(spec, with_values=True)

    def _declare_package_values(self, spec, with_values: bool) -> None:
        kind = DeclKind.CONSTANT if spec.type == "const_spec" else DeclKind.VARIABLE
        type_node = spec.child_by_field_name("type")
        type_expr = self._lower(type_node) if type_node is not None else None
        names = [n for n in spec.children_by_field_name("name") if n.type == "identifier"]

        values: Tuple[SyntaxNode, ...] = ()
        if with_values:
            values = self._lower_expression_list(spec.child_by_field_name("value"))
            if not values:
                return

        for index, name in enumerate(names):
            self.scope.declare(Declaration(
                kind=kind,
                name=self._text(name),
                pos=name.start_byte,
                type_expr=type_expr,
                value=values[index] if len(values) == len(names) else None,
            ))

    def _declare_imports(self, declaration) -> None:
        specs = []
        for child in declaration.named_children:
            if child.type == "import_spec":
                specs.append(child)
            elif child.type == "import_spec_list":
                specs.extend(c for c in child.named_children if c.type == "import_spec")

        for spec in specs:
            path_node = spec.child_by_field_name("path")
            if path_node is None:
                continue
            import_path = self._text(path_node).strip("\"`")
            name_node = spec.child_by_field_name("name")
            if name_node is None:
                name = default_package_name(import_path)
            else:
                name = self._text(name_node)
                if name in (".", "_"):
                    continue
            self.scope.declare(Declaration(
                kind=DeclKind.PACKAGE,
                name=name,
                pos=spec.start_byte,
                import_path=import_path,
            ))
            logger.debug(f"Import {name} -> {import_path}")

    def _value_specs(self, declaration) -> Iterator:
        for child in declaration.named_children:
            if child.type in ("var_spec", "const_spec"):
                yield child
            elif child.type == "var_spec_list":
                for spec in child.named_children:
                    if spec.type == "var_spec":
                        yield spec

    def _result_type(self, result) -> Optional[SyntaxNode]:
        """単一の戻り値型を取り出す。複数の戻り値はNone。"""
        if result is None:
            return None
        if result.type != "parameter_list":
            return self._lower(result)
        declarations = [c for c in result.named_children if c.type == "parameter_declaration"]
        if len(declarations) != 1:
            return None
        names = declarations[0].children_by_field_name("name")
        type_node = declarations[0].child_by_field_name("type")
        if len(names) > 1 or type_node is None:
            return None
        return self._lower(type_node)

    # ------------------------------------------------------------------
    # 汎用
    # ------------------------------------------------------------------

    def _text(self, node) -> str:
        return self.source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")

    @contextmanager
    def _scope(self):
        self.scope = Scope(self.scope)
        try:
            yield self.scope
        finally:
            self.scope = self.scope.parent

    def _lower(self, node) -> Optional[SyntaxNode]:
        if node is None or node.type == "comment":
            return None

        handler = self._handlers.get(node.type)
        if handler is not None:
            return handler(node)

        kind = LITERAL_KINDS.get(node.type)
        if kind is not None:
            return Literal(node.start_byte, node.end_byte, kind=kind, value=self._text(node))

        if node.type in UNRESOLVED_NAMES:
            return Identifier(node.start_byte, node.end_byte, name=self._text(node))

        if node.type in SCOPED_NODES:
            with self._scope():
                return self._lower_generic(node)

        return self._lower_generic(node)

    def _lower_generic(self, node) -> SyntaxNode:
        return Other(
            node.start_byte,
            node.end_byte,
            kind=node.type,
            items=self._lower_all(_named(node)),
        )

    def _lower_all(self, nodes) -> Tuple[SyntaxNode, ...]:
        lowered = (self._lower(node) for node in nodes)
        return tuple(item for item in lowered if item is not None)

    def _lower_expression_list(self, node) -> Tuple[SyntaxNode, ...]:
        if node is None:
            return ()
        if node.type != "expression_list":
            lowered = self._lower(node)
            return (lowered,) if lowered is not None else ()
        return self._lower_all(_named(node))

    def _identifier(self, node, record: bool = True) -> Identifier:
        identifier = Identifier(node.start_byte, node.end_byte, name=self._text(node))
        if record:
            declaration = self.scope.lookup(identifier.name)
            if declaration is not None:
                self.symbols.record(identifier, declaration)
        return identifier

    def _declare(self, identifier: Identifier, declaration: Declaration) -> None:
        self.scope.declare(declaration)
        self.symbols.record(identifier, declaration)

    # ------------------------------------------------------------------
    # select文と通信
    # ------------------------------------------------------------------

    def _lower_select(self, node) -> WaitConstruct:
        body: List[SyntaxNode] = []
        for child in _named(node):
            if child.type == "communication_case":
                body.append(self._lower_comm_case(child))
            elif child.type == "default_case":
                with self._scope():
                    body.append(DefaultClause(
                        child.start_byte,
                        child.end_byte,
                        body=self._lower_all(_named(child)),
                    ))
            else:
                lowered = self._lower(child)
                if lowered is not None:
                    body.append(lowered)
        return WaitConstruct(node.start_byte, node.end_byte, body=tuple(body))

    def _lower_comm_case(self, node) -> CommClause:
        with self._scope():
            comm = node.child_by_field_name("communication")
            communication: Optional[SyntaxNode] = None
            assignments: Tuple[SyntaxNode, ...] = ()
            if comm is not None and comm.type == "receive_statement":
                communication, assignments = self._lower_receive_statement(comm)
            elif comm is not None:
                communication = self._lower(comm)

            rest = [
                child for child in _named(node)
                if comm is None or child.start_byte != comm.start_byte or child.type != comm.type
            ]
            return CommClause(
                node.start_byte,
                node.end_byte,
                body=self._lower_all(rest),
                communication=communication,
                assignments=assignments,
            )

    def _lower_receive_statement(self, node) -> Tuple[Optional[SyntaxNode], Tuple[SyntaxNode, ...]]:
        expression = self._lower(node.child_by_field_name("right"))
        left = node.child_by_field_name("left")
        if left is None:
            return expression, ()

        define = _has_token(node, ":=")
        targets: List[SyntaxNode] = []
        for index, target in enumerate(_named(left)):
            if define and target.type == "identifier":
                identifier = self._identifier(target, record=False)
                self._declare(identifier, Declaration(
                    kind=DeclKind.VARIABLE,
                    name=identifier.name,
                    pos=identifier.pos,
                    value=expression if index == 0 else None,
                ))
                targets.append(identifier)
            else:
                lowered = self._lower(target)
                if lowered is not None:
                    targets.append(lowered)
        return expression, tuple(targets)

    def _lower_send(self, node) -> SendOperation:
        return SendOperation(
            node.start_byte,
            node.end_byte,
            channel=self._lower(node.child_by_field_name("channel")),
            value=self._lower(node.child_by_field_name("value")),
        )

    def _lower_unary(self, node) -> SyntaxNode:
        operator = node.child_by_field_name("operator")
        operand = self._lower(node.child_by_field_name("operand"))
        if operator is not None and operator.type == "<-":
            return ReceiveExpression(node.start_byte, node.end_byte, operand=operand)
        return Other(
            node.start_byte,
            node.end_byte,
            kind=node.type,
            items=(operand,) if operand is not None else (),
        )

    # ------------------------------------------------------------------
    # 式と型
    # ------------------------------------------------------------------

    def _lower_call(self, node) -> CallExpression:
        function = self._lower(node.child_by_field_name("function"))
        arguments_node = node.child_by_field_name("arguments")
        arguments = self._lower_all(_named(arguments_node)) if arguments_node is not None else ()
        return CallExpression(
            node.start_byte,
            node.end_byte,
            function=function,
            arguments=arguments,
        )

    def _lower_channel_type(self, node) -> ChannelTypeExpression:
        tokens = [child.type for child in node.children if not child.is_named]
        if tokens and tokens[0] == "<-":
            direction = ChanDir.RECV
        elif "<-" in tokens:
            direction = ChanDir.SEND
        else:
            direction = ChanDir.BOTH
        return ChannelTypeExpression(
            node.start_byte,
            node.end_byte,
            element=self._lower(node.child_by_field_name("value")),
            direction=direction,
        )

    def _lower_selector(self, node) -> SelectorExpression:
        field = node.child_by_field_name("field")
        return SelectorExpression(
            node.start_byte,
            node.end_byte,
            operand=self._lower(node.child_by_field_name("operand")),
            field=self._text(field) if field is not None else "",
        )

    def _lower_qualified_type(self, node) -> SelectorExpression:
        package = node.child_by_field_name("package")
        name = node.child_by_field_name("name")
        return SelectorExpression(
            node.start_byte,
            node.end_byte,
            operand=self._identifier(package) if package is not None else None,
            field=self._text(name) if name is not None else "",
        )

    def _lower_type_assertion(self, node) -> TypeAssertion:
        return TypeAssertion(
            node.start_byte,
            node.end_byte,
            operand=self._lower(node.child_by_field_name("operand")),
            asserted_type=self._lower(node.child_by_field_name("type")),
        )

    def _lower_binary(self, node) -> BinaryExpression:
        operator = node.child_by_field_name("operator")
        return BinaryExpression(
            node.start_byte,
            node.end_byte,
            left=self._lower(node.child_by_field_name("left")),
            operator=self._text(operator) if operator is not None else "",
            right=self._lower(node.child_by_field_name("right")),
        )

    def _lower_parenthesized(self, node) -> SyntaxNode:
        inner = _named(node)
        if len(inner) == 1:
            lowered = self._lower(inner[0])
            if lowered is not None:
                return lowered
        return self._lower_generic(node)

    def _lower_identifier(self, node) -> Identifier:
        return self._identifier(node)

    def _lower_import_declaration(self, node) -> SyntaxNode:
        return Other(node.start_byte, node.end_byte, kind=node.type)

    # ------------------------------------------------------------------
    # 宣言
    # ------------------------------------------------------------------

    def _lower_function(self, node) -> SyntaxNode:
        items: List[SyntaxNode] = []
        name = node.child_by_field_name("name")
        if name is not None and name.type == "identifier":
            items.append(self._identifier(name))

        with self._scope():
            for field in ("receiver", "parameters", "result"):
                child = node.child_by_field_name(field)
                if child is None:
                    continue
                if child.type == "parameter_list":
                    items.extend(self._declare_parameters(child))
                else:
                    lowered = self._lower(child)
                    if lowered is not None:
                        items.append(lowered)

            body = self._lower(node.child_by_field_name("body"))
            if body is not None:
                items.append(body)

        return Other(node.start_byte, node.end_byte, kind=node.type, items=tuple(items))

    def _declare_parameters(self, parameter_list) -> List[SyntaxNode]:
        items: List[SyntaxNode] = []
        for parameter in _named(parameter_list):
            if parameter.type not in ("parameter_declaration", "variadic_parameter_declaration"):
                continue
            type_expr = self._lower(parameter.child_by_field_name("type"))
            # 可変長引数の型はスライスなので宣言型は持たせない
            declared_type = type_expr if parameter.type == "parameter_declaration" else None
            for name in parameter.children_by_field_name("name"):
                identifier = self._identifier(name, record=False)
                self._declare(identifier, Declaration(
                    kind=DeclKind.VARIABLE,
                    name=identifier.name,
                    pos=identifier.pos,
                    type_expr=declared_type,
                ))
                items.append(identifier)
            if type_expr is not None:
                items.append(type_expr)
        return items

    def _lower_short_var_declaration(self, node) -> SyntaxNode:
        values = self._lower_expression_list(node.child_by_field_name("right"))
        left = node.child_by_field_name("left")
        targets = _named(left) if left is not None else []

        items: List[SyntaxNode] = []
        for index, target in enumerate(targets):
            if target.type != "identifier":
                lowered = self._lower(target)
                if lowered is not None:
                    items.append(lowered)
                continue
            identifier = self._identifier(target, record=False)
            value = values[index] if len(values) == len(targets) else None
            self._declare(identifier, Declaration(
                kind=DeclKind.VARIABLE,
                name=identifier.name,
                pos=identifier.pos,
                value=value,
            ))
            items.append(identifier)

        return Other(node.start_byte, node.end_byte, kind=node.type, items=tuple(items) + values)

    def _lower_value_spec(self, node) -> SyntaxNode:
        kind = DeclKind.CONSTANT if node.type == "const_spec" else DeclKind.VARIABLE
        type_expr = self._lower(node.child_by_field_name("type"))
        values = self._lower_expression_list(node.child_by_field_name("value"))
        names = [n for n in node.children_by_field_name("name") if n.type == "identifier"]

        identifiers: List[SyntaxNode] = []
        for index, name in enumerate(names):
            identifier = self._identifier(name, record=False)
            if self.scope is self.symbols.file_scope:
                # パッケージレベルは事前登録済み
                declaration = self.scope.lookup_local(identifier.name)
                if declaration is not None:
                    self.symbols.record(identifier, declaration)
            else:
                self._declare(identifier, Declaration(
                    kind=kind,
                    name=identifier.name,
                    pos=identifier.pos,
                    type_expr=type_expr,
                    value=values[index] if len(values) == len(names) else None,
                ))
            identifiers.append(identifier)

        items = tuple(identifiers) + ((type_expr,) if type_expr is not None else ()) + values
        return Other(node.start_byte, node.end_byte, kind=node.type, items=items)

    def _lower_range_clause(self, node) -> SyntaxNode:
        right = self._lower(node.child_by_field_name("right"))
        left = node.child_by_field_name("left")

        items: List[SyntaxNode] = []
        if left is not None:
            define = _has_token(node, ":=")
            for target in _named(left):
                if define and target.type == "identifier":
                    identifier = self._identifier(target, record=False)
                    self._declare(identifier, Declaration(
                        kind=DeclKind.VARIABLE,
                        name=identifier.name,
                        pos=identifier.pos,
                    ))
                    items.append(identifier)
                else:
                    lowered = self._lower(target)
                    if lowered is not None:
                        items.append(lowered)
        if right is not None:
            items.append(right)
        return Other(node.start_byte, node.end_byte, kind=node.type, items=tuple(items))


def collect_nolint(root, source: bytes) -> Dict[int, FrozenSet[str]]:
    """``//nolint`` コメントを行ごとに集める。

    コメントだけの行に書かれた場合は次の行にも適用する。

    Args:
        root: tree-sitterのルートノード
        source: ソースのバイト列

    Returns:
        1始まりの行番号→リンター名の集合（空集合は全リンター）
    """
    directives: Dict[int, FrozenSet[str]] = {}
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "comment":
            text = source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")
            match = _NOLINT.match(text)
            if match:
                linters = frozenset(
                    name.strip() for name in (match.group(1) or "").split(",") if name.strip()
                )
                row, column = node.start_point
                line = row + 1
                directives[line] = linters
                line_start = node.start_byte - column
                if not source[line_start:node.start_byte].strip():
                    directives.setdefault(line + 1, linters)
            continue
        stack.extend(node.children)
    return directives
