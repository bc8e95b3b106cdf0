"""Extension compatibility probing against an upgrade target."""

import logging
import re
from typing import Protocol

from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import Version

from typo3_upgrade_planner.models import ExtensionFact
from typo3_upgrade_planner.versions import is_valid, major_of, parse_version

logger = logging.getLogger(__name__)

# Extensions abandoned after a platform major: key -> (last supported major, replacements)
ABANDONED_EXTENSIONS: dict[str, tuple[int, list[str]]] = {
    "realurl": (8, ["core site handling (routing, built in since 9.5)"]),
    "tt_news": (8, ["georgringer/news"]),
    "gridelements": (11, ["b13/container"]),
    "dd_googlesitemap": (9, ["typo3/cms-seo"]),
    "metaseo": (8, ["typo3/cms-seo", "yoast-seo-for-typo3/yoast_seo"]),
    "sr_language_menu": (7, ["core language menu data processor"]),
    "css_styled_content": (8, ["typo3/cms-fluid-styled-content"]),
    "compatibility6": (7, []),
    "compatibility7": (8, []),
    "dce": (12, ["mask/mask", "b13/content-blocks"]),
}

_EMCONF_RANGE = re.compile(r"^\s*(\d+(?:\.\d+){0,2})\s*-\s*(\d+(?:\.\d+){0,2})\s*$")
_COMPOSER_OPERATOR = re.compile(r"^(\^|~|>=|<=|>|<|==|=|!=)?\s*v?(\d+(?:\.\d+){0,2})(\.\*)?$")


class CompatibilityChecker(Protocol):
    """Decides whether an extension works on a target version."""

    def check(self, extension: ExtensionFact, target_version: str) -> bool | None:
        ...


def _bump(version: str, position: int) -> str:
    parts = [int(p) for p in version.split(".")]
    parts += [0] * (3 - len(parts))
    parts[position] += 1
    for index in range(position + 1, 3):
        parts[index] = 0
    return ".".join(str(p) for p in parts)


def _composer_term(term: str) -> list[str] | None:
    """Translate one composer constraint term into PEP 440 specifiers."""
    if term in ("*", ""):
        return []

    match = _COMPOSER_OPERATOR.match(term)
    if not match:
        return None

    operator, version, wildcard = match.group(1), match.group(2), match.group(3)
    depth = version.count(".")

    if wildcard:
        return [f"=={version}.*"]
    if operator == "^":
        return [f">={version}", f"<{_bump(version, 0)}"]
    if operator == "~":
        return [f">={version}", f"<{_bump(version, 0 if depth <= 1 else 1)}"]
    if operator in (None, "=", "=="):
        return [f"=={version}.*"] if depth < 2 else [f"=={version}"]
    return [f"{operator}{version}"]


def constraint_to_specifiers(constraint: str) -> list[SpecifierSet] | None:
    """Convert an emconf or composer constraint to alternative specifier sets.

    ``11.5.0-12.4.99`` (emconf), ``^11.5 || ^12.4`` and ``>=10.4 <13``
    (composer) are understood. An upper emconf bound of ``0.0.0`` means
    open-ended.

    Args:
        constraint: Constraint text

    Returns:
        One specifier set per ``||`` alternative, or None if unparseable
    """
    text = constraint.strip()

    emconf = _EMCONF_RANGE.match(text)
    if emconf and " - " not in text:
        lower, upper = emconf.group(1), emconf.group(2)
        if parse_version(upper) == Version("0"):
            return [SpecifierSet(f">={lower}")]
        return [SpecifierSet(f">={lower},<={upper}")]

    alternatives: list[SpecifierSet] = []
    for part in re.split(r"\s*\|\|?\s*", text):
        hyphen = _EMCONF_RANGE.match(part)
        if hyphen:
            upper = hyphen.group(2)
            depth = upper.count(".")
            # A partial upper bound covers the whole line: "- 12.4" means "< 12.5"
            upper_spec = f"<={upper}" if depth >= 2 else f"<{_bump(upper, depth)}"
            specifiers = [f">={hyphen.group(1)}", upper_spec]
        else:
            specifiers = []
            compact = re.sub(r"([<>=^~!])\s+", r"\1", part)
            for term in re.split(r"[\s,]+", compact.strip()):
                translated = _composer_term(term)
                if translated is None:
                    return None
                specifiers.extend(translated)
        try:
            alternatives.append(SpecifierSet(",".join(specifiers)))
        except InvalidSpecifier:
            return None

    return alternatives or None


def satisfies(constraint: str, target_version: str) -> bool | None:
    """Check a target version against a constraint.

    Returns:
        True/False, or None when the constraint cannot be interpreted
    """
    alternatives = constraint_to_specifiers(constraint)
    if alternatives is None:
        logger.debug(f"Cannot interpret constraint {constraint!r}")
        return None

    target = parse_version(target_version)
    # Major.minor targets match any patch of that line
    candidates = [target, Version(f"{target.major}.{target.minor}.99")]
    return any(spec.contains(v, prereleases=True) for spec in alternatives for v in candidates)


class ConstraintCompatibilityChecker:
    """Checks compatibility from declared constraints and known abandonments."""

    def __init__(self, abandoned: dict[str, tuple[int, list[str]]] | None = None) -> None:
        self.abandoned = ABANDONED_EXTENSIONS if abandoned is None else abandoned

    def check(self, extension: ExtensionFact, target_version: str) -> bool | None:
        """Decide compatibility of one extension.

        Bundled extensions always ship with the target. Abandoned extensions
        fail beyond their last supported major. Otherwise the declared
        constraint decides; without one the result stays unknown.
        """
        if extension.bundled:
            return True

        abandoned = self.abandoned.get(extension.key)
        if abandoned is not None and major_of(target_version) > abandoned[0]:
            return False

        if extension.typo3_constraint:
            return satisfies(extension.typo3_constraint, target_version)
        return None

    def alternatives_for(self, extension: ExtensionFact) -> list[str]:
        """Known replacement packages for an extension."""
        abandoned = self.abandoned.get(extension.key)
        return list(abandoned[1]) if abandoned else []

    def apply(self, extensions: list[ExtensionFact], target_version: str) -> list[ExtensionFact]:
        """Set ``compatible`` and ``alternatives`` on each extension in place.

        Args:
            extensions: Extension facts
            target_version: Upgrade target

        Returns:
            The same list, for chaining
        """
        if not is_valid(target_version):
            return extensions

        for extension in extensions:
            extension.compatible = self.check(extension, target_version)
            if extension.compatible is False and not extension.alternatives:
                extension.alternatives = self.alternatives_for(extension)

        incompatible = sum(1 for e in extensions if e.compatible is False)
        logger.debug(f"{incompatible} of {len(extensions)} extensions incompatible with {target_version}")
        return extensions
