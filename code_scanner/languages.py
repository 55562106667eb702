"""Grammar and pattern-query provider, keyed by file extension.

Each supported language maps to a tree-sitter grammar wheel and a set of
declarative queries: one per definition kind, plus a ``call`` query
(``@call_name``) and a ``parameter`` query (``@param_name`` with an optional
``@param_type``) that is run inside a captured ``@params`` block.

Definition queries bind ``@name`` and an anchor capture named after the kind
(``@function``, ``@class``, ...).  Optional captures: ``@modifier``,
``@dataType``, ``@value``, ``@return_type`` and ``@params``.
"""

from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Tuple

from tree_sitter import Language, Parser, Query

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Language <-> file-extension mapping
# ---------------------------------------------------------------------------
LANGUAGE_MAP: Dict[str, str] = {
    ".py": "python",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".ts": "typescript",
    ".tsx": "tsx",
    ".cs": "c_sharp",
    ".php": "php",
}

# language -> (module, function returning the language capsule)
_GRAMMAR_MODULES: Dict[str, Tuple[str, str]] = {
    "python": ("tree_sitter_python", "language"),
    "javascript": ("tree_sitter_javascript", "language"),
    "typescript": ("tree_sitter_typescript", "language_typescript"),
    "tsx": ("tree_sitter_typescript", "language_tsx"),
    "c_sharp": ("tree_sitter_c_sharp", "language"),
    "php": ("tree_sitter_php", "language_php"),
}


# ===================================================================
# Queries
# ===================================================================

_PY_DEF_TAIL = "name: (identifier) @name parameters: (parameters) @params return_type: (_)? @return_type"
_PY_BLOCK_DEF = f"(block (function_definition {_PY_DEF_TAIL}) @function)"
_PY_BLOCK_DECORATED = f"(block (decorated_definition definition: (function_definition {_PY_DEF_TAIL}) @function))"

# Module-level compound statements whose blocks may hold functions
# (``if TYPE_CHECKING:``, import fallbacks in ``try``/``except``, ...).
_PY_MODULE_BRANCHES = (
    "(module (if_statement consequence: {block}))",
    "(module (if_statement alternative: (elif_clause consequence: {block})))",
    "(module (if_statement alternative: (else_clause body: {block})))",
    "(module (try_statement body: {block}))",
    "(module (try_statement (except_clause {block})))",
    "(module (try_statement (else_clause body: {block})))",
    "(module (try_statement (finally_clause {block})))",
    "(module (with_statement body: {block}))",
)

PYTHON_QUERIES: Dict[str, str] = {
    "function": f"""
        (module (function_definition {_PY_DEF_TAIL}) @function)
        (module (decorated_definition definition: (function_definition {_PY_DEF_TAIL}) @function))
        (function_definition body: {_PY_BLOCK_DEF})
        (function_definition body: {_PY_BLOCK_DECORATED})
    """ + "\n".join(
        branch.format(block=block)
        for branch in _PY_MODULE_BRANCHES
        for block in (_PY_BLOCK_DEF, _PY_BLOCK_DECORATED)
    ),
    "method": f"""
        (class_definition body: (block (function_definition {_PY_DEF_TAIL}) @method))
        (class_definition body: (block (decorated_definition definition: (function_definition {_PY_DEF_TAIL}) @method)))
    """,
    "class": "(class_definition name: (identifier) @name) @class",
    "variable": """
        (module (expression_statement
            (assignment left: (identifier) @name type: (_)? @dataType right: (_)? @value) @variable))
        (class_definition body: (block (expression_statement
            (assignment left: (identifier) @name type: (_)? @dataType right: (_)? @value) @variable)))
    """,
    "call": """
        (call function: [
            (identifier) @call_name
            (attribute attribute: (identifier) @call_name)
        ])
    """,
    "parameter": """
        (parameters (identifier) @param_name)
        (parameters (default_parameter name: (identifier) @param_name))
        (parameters (typed_parameter (identifier) @param_name type: (_) @param_type))
        (parameters (typed_default_parameter name: (identifier) @param_name type: (_) @param_type))
        (parameters (list_splat_pattern (identifier) @param_name))
        (parameters (dictionary_splat_pattern (identifier) @param_name))
        (parameters (typed_parameter (list_splat_pattern (identifier) @param_name) type: (_) @param_type))
        (parameters (typed_parameter (dictionary_splat_pattern (identifier) @param_name) type: (_) @param_type))
    """,
}

_JS_CALL = """
    (call_expression function: [
        (identifier) @call_name
        (member_expression property: (property_identifier) @call_name)
    ])
"""

JAVASCRIPT_QUERIES: Dict[str, str] = {
    "function": """
        [
          (function_declaration name: (identifier) @name parameters: (formal_parameters) @params)
          (generator_function_declaration name: (identifier) @name parameters: (formal_parameters) @params)
        ] @function
    """,
    "method": "(method_definition name: (_) @name parameters: (formal_parameters) @params) @method",
    "class": "(class_declaration name: (identifier) @name) @class",
    "variable": """
        [
          (lexical_declaration (variable_declarator name: (identifier) @name value: (_)? @value))
          (variable_declaration (variable_declarator name: (identifier) @name value: (_)? @value))
        ] @variable
    """,
    "property": "(field_definition property: (property_identifier) @name value: (_)? @value) @property",
    "call": _JS_CALL,
    "parameter": """
        (formal_parameters (identifier) @param_name)
        (formal_parameters (assignment_pattern left: (identifier) @param_name))
        (formal_parameters (rest_pattern (identifier) @param_name))
        (formal_parameters [(object_pattern) (array_pattern)] @param_name)
        (formal_parameters (assignment_pattern left: [(object_pattern) (array_pattern)] @param_name))
    """,
}

_TS_PARAM_TYPE = "type: (type_annotation (_) @param_type)?"
_TS_RETURN = "return_type: (type_annotation (_) @return_type)?"

TYPESCRIPT_QUERIES: Dict[str, str] = {
    "function": f"""
        (function_declaration name: (identifier) @name parameters: (formal_parameters) @params {_TS_RETURN}) @function
    """,
    "method": f"""
        (method_definition (accessibility_modifier)? @modifier name: (_) @name
            parameters: (formal_parameters) @params {_TS_RETURN}) @method
    """,
    "class": """
        [
          (class_declaration name: (_) @name)
          (abstract_class_declaration name: (_) @name)
        ] @class
    """,
    "interface": "(interface_declaration name: (_) @name) @interface",
    "namespace": "(internal_module name: (_) @name) @namespace",
    "enum": "(enum_declaration name: (_) @name) @enum",
    "enumMember": """
        (enum_body (property_identifier) @name @enumMember)
        (enum_assignment name: (_) @name value: (_)? @value) @enumMember
    """,
    "variable": """
        [
          (lexical_declaration (variable_declarator name: (identifier) @name
              type: (type_annotation (_) @dataType)? value: (_)? @value))
          (variable_declaration (variable_declarator name: (identifier) @name
              type: (type_annotation (_) @dataType)? value: (_)? @value))
        ] @variable
    """,
    "property": """
        (public_field_definition (accessibility_modifier)? @modifier name: (_) @name
            type: (type_annotation (_) @dataType)? value: (_)? @value) @property
        (property_signature name: (_) @name type: (type_annotation (_) @dataType)?) @property
    """,
    "call": _JS_CALL,
    "parameter": f"""
        (formal_parameters (required_parameter pattern: (identifier) @param_name {_TS_PARAM_TYPE}))
        (formal_parameters (optional_parameter pattern: (identifier) @param_name {_TS_PARAM_TYPE}))
        (formal_parameters (required_parameter pattern: [(object_pattern) (array_pattern)] @param_name {_TS_PARAM_TYPE}))
        (formal_parameters (optional_parameter pattern: [(object_pattern) (array_pattern)] @param_name {_TS_PARAM_TYPE}))
        (formal_parameters (required_parameter pattern: (rest_pattern (identifier) @param_name) {_TS_PARAM_TYPE}))
    """,
}

C_SHARP_QUERIES: Dict[str, str] = {
    "class": """
        (class_declaration (modifier)* @modifier name: (identifier) @name) @class
        (struct_declaration (modifier)* @modifier name: (identifier) @name) @class
    """,
    "interface": "(interface_declaration (modifier)* @modifier name: (identifier) @name) @interface",
    "method": """
        (method_declaration (modifier)* @modifier name: (identifier) @name
            parameters: (parameter_list) @params) @method
    """,
    "namespace": "(namespace_declaration name: (_) @name) @namespace",
    "enum": "(enum_declaration (modifier)* @modifier name: (identifier) @name) @enum",
    "enumMember": "(enum_member_declaration name: (identifier) @name) @enumMember",
    "variable": """
        (local_declaration_statement
            (variable_declaration type: (_) @dataType (variable_declarator . (identifier) @name))) @variable
    """,
    "property": """
        (field_declaration (modifier)* @modifier
            (variable_declaration type: (_) @dataType (variable_declarator . (identifier) @name))) @property
        (property_declaration (modifier)* @modifier type: (_) @dataType name: (identifier) @name) @property
    """,
    "call": """
        (invocation_expression . [
            (identifier) @call_name
            (member_access_expression name: (identifier) @call_name)
        ])
    """,
    "parameter": "(parameter_list (parameter type: (_)? @param_type name: (identifier) @param_name))",
}

_PHP_MODIFIERS = "[(visibility_modifier) (static_modifier) (abstract_modifier) (final_modifier)]* @modifier"

PHP_QUERIES: Dict[str, str] = {
    "function": """
        (function_definition name: (name) @name parameters: (formal_parameters) @params
            return_type: (_)? @return_type) @function
    """,
    "method": f"""
        (method_declaration {_PHP_MODIFIERS} name: (name) @name parameters: (formal_parameters) @params
            return_type: (_)? @return_type) @method
    """,
    "class": "(class_declaration name: (name) @name) @class",
    "interface": "(interface_declaration name: (name) @name) @interface",
    "namespace": "(namespace_definition name: (namespace_name) @name) @namespace",
    "enum": "(enum_declaration name: (name) @name) @enum",
    "enumMember": "(enum_case name: (name) @name value: (_)? @value) @enumMember",
    "property": f"""
        (property_declaration {_PHP_MODIFIERS} type: (_)? @dataType
            (property_element . (variable_name) @name)) @property
    """,
    "call": """
        (function_call_expression function: [(name) @call_name (qualified_name) @call_name])
        (member_call_expression name: (name) @call_name)
    """,
    "parameter": """
        (formal_parameters (simple_parameter type: (_)? @param_type name: (variable_name) @param_name))
    """,
}

LANGUAGE_QUERIES: Dict[str, Dict[str, str]] = {
    "python": PYTHON_QUERIES,
    "javascript": JAVASCRIPT_QUERIES,
    "typescript": TYPESCRIPT_QUERIES,
    "tsx": TYPESCRIPT_QUERIES,
    "c_sharp": C_SHARP_QUERIES,
    "php": PHP_QUERIES,
}

# Child node types read as modifiers when they precede a definition's name.
# Keyword tokens such as ``static`` are anonymous nodes, so they are matched
# by type here instead of in the queries.
_TS_MODIFIERS = frozenset({
    "accessibility_modifier", "override_modifier",
    "static", "async", "readonly", "abstract", "declare",
})

MODIFIER_TOKENS: Dict[str, FrozenSet[str]] = {
    "python": frozenset({"async"}),
    "javascript": frozenset({"static", "async"}),
    "typescript": _TS_MODIFIERS,
    "tsx": _TS_MODIFIERS,
    "c_sharp": frozenset({"modifier"}),
    "php": frozenset({
        "visibility_modifier", "static_modifier", "abstract_modifier",
        "final_modifier", "readonly_modifier",
    }),
}


# ===================================================================
# Provider
# ===================================================================

@dataclass
class LanguageSupport:
    """A loaded grammar plus its query sources for one language."""

    name: str
    language: Language
    queries: Dict[str, str]
    modifier_tokens: FrozenSet[str] = frozenset()
    _compiled: Dict[str, Optional[Query]] = field(default_factory=dict, repr=False)

    def new_parser(self) -> Parser:
        """Return a fresh parser; parsers are not shared between calls."""
        return Parser(self.language)

    def definition_kinds(self) -> List[str]:
        return [kind for kind, source in self.queries.items() if source.strip() and kind not in ("call", "parameter")]

    def query(self, kind: str) -> Optional[Query]:
        """Compile (once) and return the query for *kind*, or None.

        A query the installed grammar rejects is logged and cached as None so
        the warning is emitted once per language/kind.
        """
        if kind in self._compiled:
            return self._compiled[kind]
        source = self.queries.get(kind, "")
        compiled: Optional[Query] = None
        if source.strip():
            try:
                compiled = Query(self.language, source)
            except Exception as exc:
                logger.warning("Could not compile '%s' query for %s: %s", kind, self.name, exc)
        self._compiled[kind] = compiled
        return compiled


class LanguageRegistry:
    """Map file extensions to :class:`LanguageSupport`, loading grammars lazily."""

    def __init__(
        self,
        language_map: Optional[Dict[str, str]] = None,
        queries: Optional[Dict[str, Dict[str, str]]] = None,
    ) -> None:
        self._language_map = dict(language_map or LANGUAGE_MAP)
        self._queries = dict(queries or LANGUAGE_QUERIES)
        self._loaded: Dict[str, Optional[LanguageSupport]] = {}

    @property
    def extensions(self) -> List[str]:
        return sorted(self._language_map)

    def extension_map(self) -> Dict[str, str]:
        """Extension to language name, sorted by extension."""
        return dict(sorted(self._language_map.items()))

    def language_for(self, file_path: str | Path) -> Optional[str]:
        return self._language_map.get(Path(file_path).suffix.lower())

    def get(self, file_path: str | Path) -> Optional[LanguageSupport]:
        """Return the grammar and queries for *file_path*, or None if unsupported."""
        lang = self.language_for(file_path)
        if lang is None:
            return None
        if lang not in self._loaded:
            self._loaded[lang] = self._load(lang)
        return self._loaded[lang]

    def is_available(self, language: str) -> bool:
        if language not in self._loaded:
            self._loaded[language] = self._load(language)
        return self._loaded[language] is not None

    def _load(self, lang: str) -> Optional[LanguageSupport]:
        grammar = _GRAMMAR_MODULES.get(lang)
        if grammar is None:
            logger.warning("No grammar module mapped for language '%s'", lang)
            return None
        mod_name, func_name = grammar
        try:
            mod = importlib.import_module(mod_name)
            ts_lang = Language(getattr(mod, func_name)())
        except ImportError:
            logger.warning(
                "Grammar package '%s' not installed for language '%s'. Install with: pip install %s",
                mod_name, lang, mod_name.replace("_", "-"),
            )
            return None
        except Exception as exc:
            logger.warning("Could not load tree-sitter grammar for %s: %s", lang, exc)
            return None
        logger.debug("Loaded tree-sitter grammar for %s", lang)
        return LanguageSupport(
            name=lang,
            language=ts_lang,
            queries=self._queries.get(lang, {}),
            modifier_tokens=MODIFIER_TOKENS.get(lang, frozenset()),
        )


_default_registry: Optional[LanguageRegistry] = None


def default_registry() -> LanguageRegistry:
    global _default_registry
    if _default_registry is None:
        _default_registry = LanguageRegistry()
    return _default_registry
