"""Data models for Go channel analysis."""

from .finding import Finding, Rule, Severity, SourceLocation
from .settings import Settings
from .source import SourceFile
from .symbols import Declaration, DeclKind, ResolvedType, TypeKind, TypeResolver
from .syntax import (
    CallExpression,
    ChannelTypeExpression,
    Clause,
    CommClause,
    DefaultClause,
    Identifier,
    Literal,
    ReceiveExpression,
    SendOperation,
    SyntaxNode,
    WaitConstruct,
    walk,
)

__all__ = [
    "Finding",
    "Rule",
    "Severity",
    "SourceLocation",
    "Settings",
    "SourceFile",
    "Declaration",
    "DeclKind",
    "ResolvedType",
    "TypeKind",
    "TypeResolver",
    "CallExpression",
    "ChannelTypeExpression",
    "Clause",
    "CommClause",
    "DefaultClause",
    "Identifier",
    "Literal",
    "ReceiveExpression",
    "SendOperation",
    "SyntaxNode",
    "WaitConstruct",
    "walk",
]
