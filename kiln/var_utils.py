"""Variable placeholder utilities for Kiln.

Asset source paths, glob patterns and target paths may contain ``{name}``
placeholders. Each asset declares its variables together with a default
value (``None`` meaning "no default"), and callers supply concrete values.

Functions:
    find_placeholders: List the placeholder names used in a template.
    resolve: Substitute placeholders using values and declared defaults.
    get_combinations: Cartesian product of variable values.
"""

from __future__ import annotations

import itertools
import re
from collections.abc import Mapping
from typing import Any

PLACEHOLDER_RE = re.compile(r"\{(\w+)\}")


class VariableResolutionError(ValueError):
    """Error raised when a placeholder cannot be given a value.

    Attributes:
        template: The template being resolved.
        name: The variable that could not be resolved.
    """

    def __init__(self, template: str, name: str, message: str):
        self.template = template
        self.name = name
        super().__init__(message)


def find_placeholders(template: str) -> list[str]:
    """Return the unique placeholder names in ``template``, in order.

    Examples:
        >>> find_placeholders("js/{locale}/app.{locale}.{env}.js")
        ['locale', 'env']
    """
    seen: list[str] = []
    for name in PLACEHOLDER_RE.findall(template):
        if name not in seen:
            seen.append(name)
    return seen


def resolve(template: str, vars: Mapping[str, Any], values: Mapping[str, Any]) -> str:
    """Substitute ``{name}`` placeholders in a template.

    A supplied value wins over the declared default. A placeholder that is
    not declared, or that has neither a value nor a default, is an error.

    Args:
        template: String containing placeholders.
        vars: Declared variables mapped to default values.
        values: Concrete values.

    Returns:
        The template with every placeholder replaced.

    Raises:
        VariableResolutionError: If a placeholder cannot be resolved.

    Examples:
        >>> resolve("js/{locale}.js", {"locale": "en"}, {})
        'js/en.js'
        >>> resolve("js/{locale}.js", {"locale": "en"}, {"locale": "de"})
        'js/de.js'
    """

    def substitute(match: re.Match) -> str:
        name = match.group(1)
        if name not in vars:
            raise VariableResolutionError(
                template, name, f"The variable '{name}' in '{template}' is not declared."
            )
        value = values.get(name)
        if value is None:
            value = vars[name]
        if value is None:
            raise VariableResolutionError(
                template, name, f"The variable '{name}' in '{template}' does not have a value."
            )
        return str(value)

    return PLACEHOLDER_RE.sub(substitute, template)


def get_combinations(
    vars: Mapping[str, Any], values: Mapping[str, list[Any]]
) -> list[dict[str, Any]]:
    """Return every combination of values for the declared variables.

    Variables without listed values fall back to their single default.
    With no variables, a single empty combination is returned.

    Raises:
        VariableResolutionError: If a variable has neither values nor a default.

    Examples:
        >>> get_combinations({"locale": None}, {"locale": ["en", "de"]})
        [{'locale': 'en'}, {'locale': 'de'}]
    """
    names = list(vars)
    choices = []
    for name in names:
        listed = values.get(name)
        if listed:
            choices.append(list(listed))
        elif vars[name] is not None:
            choices.append([vars[name]])
        else:
            raise VariableResolutionError(
                "", name, f"The variable '{name}' has no values and no default."
            )
    return [dict(zip(names, combo)) for combo in itertools.product(*choices)]
