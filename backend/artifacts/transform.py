"""Rewrite merged component source so it runs without a module loader.

The entry document loads the view runtime as globals and compiles the
application module in the browser. Module-system constructs (imports,
exports, type syntax, manual mounting) are stripped, bare hook calls are
qualified with the ``React`` global, and the component to mount is exposed
through a single ``window.App`` binding.

All rewrites are text-level and ordered. Each rule is a named pattern so the
pipeline reads as data and can be extended without touching the driver.
"""

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

import structlog

from artifacts.templates import GLOBAL_COMPONENT_NAME, PLACEHOLDER_MODULE, global_binding

logger = structlog.get_logger(__name__)

MIN_MODULE_LENGTH = 20

# Checked in order when choosing the component to expose.
PRIMARY_COMPONENT_NAMES = ("App", "TodoApp", "MainApp", "Main", "Root")

HOOK_NAMES = (
    "useState",
    "useEffect",
    "useRef",
    "useMemo",
    "useCallback",
    "useContext",
    "useReducer",
    "useLayoutEffect",
)

Replacement = str | Callable[[re.Match[str]], str]


@dataclass(frozen=True)
class RewriteRule:
    """A named text rewrite applied with ``pattern.sub``."""

    name: str
    pattern: re.Pattern[str]
    replacement: Replacement = ""

    def apply(self, code: str) -> str:
        return self.pattern.sub(self.replacement, code)


@dataclass(frozen=True)
class AppModule:
    """Browser-ready application module.

    Attributes:
        code: Module source ending with the global binding
        component: Expression bound to the global
        placeholder: True if the source was unusable and replaced
    """

    code: str
    component: str
    placeholder: bool = False


# ---------------------------------------------------------------------------
# Imports
# ---------------------------------------------------------------------------

# default, namespace, named, or default-plus-named import clause
_IMPORT_CLAUSE = (
    r"(?:type\s+)?"
    r"(?:[\w$]+\s*,\s*)?"
    r"(?:\*\s*as\s+[\w$]+|\{[^}]*\}|[\w$]+)"
)
_LINE_END = r"[ \t]*;?[ \t]*(?:\n|$)"

_VIEW_LIBRARY_SPECIFIER = r"(?:react|react-dom|react-dom/client|react/jsx-runtime)"
_STYLESHEET_SPECIFIER = r"[^'\"\n]+\.(?:css|scss|sass|less)"
_RELATIVE_SPECIFIER = r"\.{1,2}/[^'\"\n]*"
_ANY_SPECIFIER = r"[^'\"\n]+"


def _import_from(specifier: str, clause: str = _IMPORT_CLAUSE) -> re.Pattern[str]:
    return re.compile(
        r"^[ \t]*import\s+" + clause + r"\s+from\s+(['\"])" + specifier + r"\1" + _LINE_END,
        re.MULTILINE,
    )


def _side_effect_import(specifier: str) -> re.Pattern[str]:
    return re.compile(
        r"^[ \t]*import\s+(['\"])" + specifier + r"\1" + _LINE_END,
        re.MULTILINE,
    )


IMPORT_RULES: tuple[RewriteRule, ...] = (
    RewriteRule(
        "type_only_import",
        _import_from(_ANY_SPECIFIER, clause=r"type\s+(?:\{[^}]*\}|[\w$]+)"),
    ),
    RewriteRule("view_library_import", _import_from(_VIEW_LIBRARY_SPECIFIER)),
    RewriteRule("stylesheet_import", _import_from(_STYLESHEET_SPECIFIER)),
    RewriteRule("stylesheet_side_effect_import", _side_effect_import(_STYLESHEET_SPECIFIER)),
    RewriteRule("relative_import", _import_from(_RELATIVE_SPECIFIER)),
    RewriteRule("relative_side_effect_import", _side_effect_import(_RELATIVE_SPECIFIER)),
    RewriteRule(
        "global_destructure",
        re.compile(
            r"^[ \t]*(?:const|let|var)\s*\{[^}]*\}\s*=\s*React" + _LINE_END,
            re.MULTILINE,
        ),
    ),
)


def strip_imports(code: str) -> str:
    """Remove imports of the view library, stylesheets, types and siblings."""
    for rule in IMPORT_RULES:
        code = rule.apply(code)
    return code


# ---------------------------------------------------------------------------
# Mount calls
# ---------------------------------------------------------------------------

_MOUNT_CALL = re.compile(
    r"(?<![\w$.])(?:ReactDOM\s*\.\s*(?:render|hydrate|createRoot|hydrateRoot)"
    r"|createRoot|hydrateRoot)\s*\("
)
_ROOT_DECLARATION = re.compile(
    r"^[ \t]*(?:const|let|var)\s+([\w$]+)\s*=\s*"
    r"(?:ReactDOM\s*\.\s*)?(?:createRoot|hydrateRoot)\s*\(",
    re.MULTILINE,
)
_ROOT_ELEMENT_DECLARATION = re.compile(
    r"^[ \t]*(?:const|let|var)\s+([\w$]+)\s*=\s*document\s*\.\s*getElementById\s*\("
    r"\s*['\"]root['\"]\s*\)\s*!?" + _LINE_END,
    re.MULTILINE,
)
_CHAINED_CALL = re.compile(r"\s*\.\s*[\w$]+\s*\(")
_QUOTES = "'\"`"


def _find_call_end(code: str, open_index: int) -> int | None:
    """Index just past the parenthesis matching ``code[open_index]``.

    String literals are skipped so parentheses inside them do not count.
    Returns None when the call is unbalanced.
    """
    depth = 0
    i = open_index
    while i < len(code):
        ch = code[i]
        if ch in _QUOTES:
            i += 1
            while i < len(code) and code[i] != ch:
                if code[i] == "\\":
                    i += 1
                i += 1
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i + 1
        i += 1
    return None


def _statement_end(code: str, call_end: int) -> int:
    """Extend a call over chained calls and the terminating semicolon."""
    end = call_end
    while True:
        chained = _CHAINED_CALL.match(code, end)
        if chained is None:
            break
        chained_end = _find_call_end(code, chained.end() - 1)
        if chained_end is None:
            break
        end = chained_end
    semicolon = re.compile(r"[ \t]*;").match(code, end)
    return semicolon.end() if semicolon else end


def _excise(code: str, start: int, end: int) -> str:
    """Remove ``code[start:end]``, dropping the line if nothing else is on it."""
    line_start = code.rfind("\n", 0, start) + 1
    if not code[line_start:start].strip():
        start = line_start
        trailing = re.compile(r"[ \t]*(?:\n|$)").match(code, end)
        if trailing:
            end = trailing.end()
    return code[:start] + code[end:]


def _remove_calls(code: str, pattern: re.Pattern[str]) -> tuple[str, int]:
    """Remove every balanced statement whose head matches ``pattern``.

    ``pattern`` must end at the opening parenthesis of the call.
    """
    removed = 0
    position = 0
    while True:
        match = pattern.search(code, position)
        if match is None:
            return code, removed
        call_end = _find_call_end(code, match.end() - 1)
        if call_end is None:
            position = match.end()
            continue
        code = _excise(code, match.start(), _statement_end(code, call_end))
        position = match.start()
        removed += 1


def strip_mount_calls(code: str) -> tuple[str, bool]:
    """Remove manual mounting; the entry document mounts the component.

    Returns:
        Tuple of (rewritten code, whether any mount call was found).
    """
    root_names = [m.group(1) for m in _ROOT_DECLARATION.finditer(code)]
    code, declarations = _remove_calls(code, _ROOT_DECLARATION)
    code, calls = _remove_calls(code, _MOUNT_CALL)
    for name in root_names:
        root_call = re.compile(
            r"(?<![\w$.])" + re.escape(name) + r"\s*\.\s*(?:render|unmount)\s*\("
        )
        code, count = _remove_calls(code, root_call)
        calls += count

    found = bool(declarations or calls)
    if found:
        code = _ROOT_ELEMENT_DECLARATION.sub(_drop_unreferenced, code)
    return code, found


def _drop_unreferenced(match: re.Match[str]) -> str:
    """Drop a root-element lookup unless something still reads the variable."""
    code = match.string
    rest = code[: match.start()] + code[match.end():]
    usage = re.compile(r"(?<![\w$.])" + re.escape(match.group(1)) + r"(?![\w$])")
    return match.group(0) if usage.search(rest) else ""


# ---------------------------------------------------------------------------
# Hooks
# ---------------------------------------------------------------------------

_BARE_HOOK = re.compile(r"(?<![\w$.])(" + "|".join(HOOK_NAMES) + r")\b")


def qualify_hooks(code: str) -> str:
    """Prefix bare hook identifiers with ``React.``."""
    return _BARE_HOOK.sub(r"React.\1", code)


# ---------------------------------------------------------------------------
# Type syntax
# ---------------------------------------------------------------------------

_BRACED_BODY = r"\{[^{}]*(?:\{[^{}]*(?:\{[^{}]*\}[^{}]*)*\}[^{}]*)*\}"
_TYPE_PARAMS = r"(?:\s*<[^>=]*>)?"
_GENERIC_ARGS = r"<(?:[^<>()=;{}]|<[^<>()=;{}]*>|\{[^{}]*\})*>"

_NAMED_TYPE = r"(?:[\w$]+\s*\.\s*)*[A-Z][\w$]*(?:" + _GENERIC_ARGS + r")?"
_PRIMITIVE_TYPE = r"(?:string|number|boolean|any|unknown|void|never|object|null|undefined)\b"
_LITERAL_TYPE = r"(?:'[^'\n]*'|\"[^\"\n]*\")"
_OBJECT_TYPE = r"\{[^{}]*(?:\{[^{}]*\}[^{}]*)*\}"
_SINGLE_TYPE = (
    r"(?:" + _NAMED_TYPE + r"|" + _PRIMITIVE_TYPE + r"|" + _OBJECT_TYPE + r")(?:\[\])*"
)
_TYPE_EXPRESSION = (
    _SINGLE_TYPE
    + r"(?:\s*\|\s*(?:" + _SINGLE_TYPE + r"|" + _LITERAL_TYPE + r"))*"
)


def _enclosing_bracket(code: str, index: int) -> int | None:
    """Position of the innermost unclosed bracket before ``index``, if any."""
    depth = 0
    for position in range(index - 1, -1, -1):
        ch = code[position]
        if ch in ")]}":
            depth += 1
        elif ch in "([{":
            if depth == 0:
                return position
            depth -= 1
    return None


_CLASS_HEADER = re.compile(r"\bclass(?:\s+[\w$]+)?(?:\s+extends\s+[^{};]+?)?\s*$")


_DECLARATION_KEYWORD = re.compile(r"\b(?:const|let|var|readonly|private|public|protected)$")


def _erase_annotation(match: re.Match[str]) -> str:
    """Erase ``: Type`` where the colon starts an annotation.

    Colons of object-literal keys and conditional expressions are kept.
    """
    code = match.string
    keep = match.group(0)
    key_start = match.start()
    while key_start > 0 and (code[key_start - 1].isalnum() or code[key_start - 1] in "_$"):
        key_start -= 1

    if key_start == match.start():
        # Return type after ")" or "]", or a destructured parameter after "}".
        if code[key_start - 1] == "}":
            return ""
        return "" if code[match.end():].lstrip()[:1] in ("{", "=") else keep

    before = code[:key_start].rstrip()
    previous = before[-1:]
    if previous in ("{", ","):
        opening = _enclosing_bracket(code, key_start)
        if opening is None or code[opening] != "{":
            return ""
        # Class fields carry annotations; object-literal keys do not.
        return "" if _CLASS_HEADER.search(code, 0, opening) else keep
    if previous in ("", "(", ";", "}") or _DECLARATION_KEYWORD.search(before):
        return ""
    return keep

TYPE_RULES: tuple[RewriteRule, ...] = (
    RewriteRule(
        "interface_declaration",
        re.compile(
            r"^[ \t]*(?:export\s+)?interface\s+[\w$]+" + _TYPE_PARAMS
            + r"(?:\s+extends\s+[^{]+)?\s*" + _BRACED_BODY + r"[ \t]*;?[ \t]*\n?",
            re.MULTILINE,
        ),
    ),
    RewriteRule(
        "object_type_alias",
        re.compile(
            r"^[ \t]*(?:export\s+)?type\s+[\w$]+" + _TYPE_PARAMS
            + r"\s*=\s*" + _BRACED_BODY + r"[ \t]*;?[ \t]*\n?",
            re.MULTILINE,
        ),
    ),
    RewriteRule(
        "multiline_union_alias",
        re.compile(
            r"^[ \t]*(?:export\s+)?type\s+[\w$]+" + _TYPE_PARAMS
            + r"\s*=[ \t]*\n(?:[ \t]*\|[^\n]*(?:\n|$))+",
            re.MULTILINE,
        ),
    ),
    RewriteRule(
        "type_alias",
        re.compile(
            r"^[ \t]*(?:export\s+)?type\s+[\w$]+" + _TYPE_PARAMS + r"\s*=[^{}\n]*(?:\n|$)",
            re.MULTILINE,
        ),
    ),
    RewriteRule(
        "component_type_annotation",
        re.compile(
            r":\s*(?:React\s*\.\s*)?(?:FC|FunctionComponent|VFC|ComponentType)\b"
            r"(?:\s*" + _GENERIC_ARGS + r")?(?=\s*=)"
        ),
    ),
    RewriteRule(
        "implements_clause",
        re.compile(r"(\bclass\b[^{};\n]*?)\s+implements\s+[^{};\n]+?(?=\s*\{)"),
        r"\1",
    ),
    RewriteRule(
        "heritage_type_arguments",
        re.compile(
            r"(\bextends\s+(?:[\w$]+\s*\.\s*)*[\w$]+)\s*" + _GENERIC_ARGS + r"(?=\s*\{)"
        ),
        r"\1",
    ),
    RewriteRule(
        "generic_call_arguments",
        re.compile(
            r"(?<=[\w$])<\s*(?=[A-Z{'\"]|" + _PRIMITIVE_TYPE + r")"
            r"(?:[^<>()=;{}]|<[^<>()=;{}]*>|\{[^{}]*\})*>(?=\s*\()"
        ),
    ),
    RewriteRule(
        "type_annotation",
        re.compile(
            r"(?<=[\w$)\]}])\??\s*:\s*" + _TYPE_EXPRESSION + r"(?=\s*[=,){])"
        ),
        _erase_annotation,
    ),
)


def erase_types(code: str) -> str:
    """Remove the common static-typing constructs."""
    for rule in TYPE_RULES:
        code = rule.apply(code)
    return code


# ---------------------------------------------------------------------------
# Exports
# ---------------------------------------------------------------------------

_DEFAULT_NAMED_DECLARATION = re.compile(
    r"^([ \t]*)export\s+default\s+((?:async\s+)?(?:function\s*\*?|class)\s+([\w$]+))",
    re.MULTILINE,
)
_DEFAULT_ANONYMOUS_FUNCTION = re.compile(
    r"^([ \t]*)export\s+default\s+((?:async\s+)?function)\s*\(",
    re.MULTILINE,
)
_DEFAULT_ARROW = re.compile(
    r"^([ \t]*)export\s+default\s+(?=(?:async\s*)?(?:\([^)]*\)|[\w$]+)\s*=>)",
    re.MULTILINE,
)
_DEFAULT_EXPRESSION = re.compile(
    r"^[ \t]*export\s+default\s+([^;\n]+?)[ \t]*;?[ \t]*(?:\n|$)",
    re.MULTILINE,
)
_EXPORT_LIST = re.compile(
    r"^[ \t]*export\s*\{[^}]*\}(?:\s*from\s*(['\"])[^'\"\n]*\1)?" + _LINE_END,
    re.MULTILINE,
)
_NAMED_EXPORT = re.compile(
    r"^([ \t]*)export\s+(?=(?:async\s+)?function\b|const\b|let\b|var\b|class\b)",
    re.MULTILINE,
)


def normalize_exports(code: str) -> tuple[str, list[str]]:
    """Strip export syntax, naming anonymous default exports ``App``.

    Returns:
        Tuple of (rewritten code, default-exported expressions in order).
    """
    defaults: list[str] = []

    def named(match: re.Match[str]) -> str:
        defaults.append(match.group(3))
        return match.group(1) + match.group(2)

    def anonymous_function(match: re.Match[str]) -> str:
        defaults.append(GLOBAL_COMPONENT_NAME)
        return f"{match.group(1)}{match.group(2)} {GLOBAL_COMPONENT_NAME}("

    def arrow(match: re.Match[str]) -> str:
        defaults.append(GLOBAL_COMPONENT_NAME)
        return f"{match.group(1)}const {GLOBAL_COMPONENT_NAME} = "

    def expression(match: re.Match[str]) -> str:
        defaults.append(match.group(1).strip())
        return ""

    code = _DEFAULT_NAMED_DECLARATION.sub(named, code)
    code = _DEFAULT_ANONYMOUS_FUNCTION.sub(anonymous_function, code)
    code = _DEFAULT_ARROW.sub(arrow, code)
    code = _DEFAULT_EXPRESSION.sub(expression, code)
    code = _EXPORT_LIST.sub("", code)
    code = _NAMED_EXPORT.sub(r"\1", code)
    return code, defaults


# ---------------------------------------------------------------------------
# Binding
# ---------------------------------------------------------------------------

_TOP_LEVEL_FUNCTION = re.compile(
    r"^(?:async\s+)?function\s*\*?\s*([\w$]+)\s*\(", re.MULTILINE
)
_TOP_LEVEL_COMPONENT = re.compile(
    r"^(?:const|let|var)\s+([A-Z][\w$]*)\s*=\s*(?:[\w$.]+\()?\s*(?:async\s*)?"
    r"(?:function\b|\([^)]*\)\s*=>|[\w$]+\s*=>)",
    re.MULTILINE,
)
_TOP_LEVEL_CLASS = re.compile(r"^class\s+([A-Z][\w$]*)", re.MULTILINE)
_EXISTING_BINDING = re.compile(
    r"\bwindow\s*\.\s*" + GLOBAL_COMPONENT_NAME + r"\s*=\s*([^;\n]+)"
)
_HAS_FUNCTION = re.compile(r"\bfunction\b|=>|\bclass\s+[\w$]+")


def declared_components(code: str) -> list[str]:
    """Top-level function, class and arrow-component names in source order."""
    found: list[tuple[int, str]] = []
    for pattern in (_TOP_LEVEL_FUNCTION, _TOP_LEVEL_COMPONENT, _TOP_LEVEL_CLASS):
        found.extend((m.start(), m.group(1)) for m in pattern.finditer(code))
    names: list[str] = []
    for _, name in sorted(found):
        if name not in names:
            names.append(name)
    return names


def choose_component(code: str, default_exports: Sequence[str]) -> str | None:
    """Pick the component to bind to the global.

    Only top-level declarations and default exports qualify, since a nested
    function is out of scope where the binding runs. Preference: a
    well-known primary name, then the first default export, then the first
    capitalized declaration, then the first top-level declaration.
    """
    declared = declared_components(code)
    for name in PRIMARY_COMPONENT_NAMES:
        if name in declared:
            return name
    if default_exports:
        return default_exports[0]
    for name in declared:
        if name[0].isupper():
            return name
    return declared[0] if declared else None


def _tidy(code: str) -> str:
    code = re.sub(r"[ \t]+\n", "\n", code)
    code = re.sub(r"\n{3,}", "\n\n", code)
    return code.strip()


def placeholder_module() -> AppModule:
    return AppModule(
        code=PLACEHOLDER_MODULE,
        component=GLOBAL_COMPONENT_NAME,
        placeholder=True,
    )


def transform_for_browser(code: str) -> AppModule:
    """Rewrite module source into a loader-free, globally bound module.

    The result always contains exactly one binding of the global component
    name; unusable source is replaced by a placeholder module.

    Args:
        code: Merged component source

    Returns:
        The browser-ready AppModule.
    """
    code = strip_imports(code)
    code, mounted = strip_mount_calls(code)
    code = qualify_hooks(code)
    code = erase_types(code)
    code, default_exports = normalize_exports(code)
    code = _tidy(code)

    if len(code) < MIN_MODULE_LENGTH or not _HAS_FUNCTION.search(code):
        logger.warning("app_module_unusable", code_chars=len(code))
        return placeholder_module()

    existing = _EXISTING_BINDING.search(code)
    if existing:
        component = existing.group(1).strip()
        logger.debug("app_module_binding_present", component=component)
        return AppModule(code=code, component=component)

    component = choose_component(code, default_exports)
    if component is None:
        logger.warning("app_module_no_component", code_chars=len(code))
        return placeholder_module()

    logger.debug(
        "app_module_transformed",
        component=component,
        mount_removed=mounted,
        default_exports=default_exports,
    )
    return AppModule(
        code=f"{code}\n\n{global_binding(component)}",
        component=component,
    )
