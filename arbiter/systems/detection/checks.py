"""
Arbiter - Rule-Backed Checks

The ordered check table. Each entry binds a rule identifier to the logic that
decides whether that rule fires for a given text. Adding a check is adding an
entry to ``default_checks()``; the detector loop never changes.

Evaluation contract for every check:
  1. The rule must be present in the active set, else the check is skipped.
  2. The rule's own applicability globs and the check's file scope must accept
     the context file, or any of the context files when no single file is set.
  3. A match on the check's allow-list suppresses the rule for this text.
  4. Patterns are tested in order; the first match emits exactly one finding
     carrying the rule's severity, then testing stops.
"""

from __future__ import annotations

import abc
import re
from collections.abc import Callable
from dataclasses import dataclass, field

from arbiter.systems.detection.types import AnalysisContext, Finding, FindingKind
from arbiter.systems.rules.types import Rule

FileScope = Callable[[str], bool]


# ─── File Scopes ────────────────────────────────────────────────


def customer_facing_markup(path: str) -> bool:
    return path.endswith(".html") and (
        "/public/" in path or "/services/" in path or "status-page" in path
    )


def live_data_surface(path: str) -> bool:
    return (
        path.endswith(".html")
        or ("/public/" in path and path.endswith(".js"))
        or ("/views/" in path and path.endswith(".ejs"))
    )


def _literal(*needles: str) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(re.escape(n)) for n in needles)


def _patterns(*sources: str) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(s, re.IGNORECASE) for s in sources)


# ─── Check Base ─────────────────────────────────────────────────


@dataclass(frozen=True)
class BaseRuleCheck(abc.ABC):
    """
    Strategy interface for one rule-backed check.

    Subclasses implement ``detect``, returning the finding details when the
    rule fires and None otherwise. Everything else (presence, scoping,
    allow-list, finding construction) is shared.
    """

    rule_id: str
    finding_type: str
    message: str
    details: str = ""
    law: str = ""
    suggested_fix: str = ""
    incident: str = ""
    kind: FindingKind = FindingKind.VIOLATION
    file_scope: FileScope | None = None
    allow: tuple[re.Pattern[str], ...] = ()
    include_financial_risk: bool = True

    @abc.abstractmethod
    def detect(self, rule: Rule, text: str) -> str | None:
        ...

    def in_scope(self, rule: Rule, context: AnalysisContext) -> bool:
        """A single context file wins; otherwise any file of a multi-file change may match."""
        paths = [context.file] if context.file else list(context.files)
        if not paths:
            return rule.applies(None) and self.file_scope is None
        return any(self._path_in_scope(rule, path) for path in paths)

    def _path_in_scope(self, rule: Rule, path: str) -> bool:
        if not rule.applies(path):
            return False
        return self.file_scope is None or self.file_scope(path)

    def evaluate(self, rule: Rule, text: str, context: AnalysisContext) -> Finding | None:
        if not self.in_scope(rule, context):
            return None
        if any(p.search(text) for p in self.allow):
            return None
        details = self.detect(rule, text)
        if details is None:
            return None
        return Finding(
            kind=self.kind,
            type=self.finding_type,
            severity=rule.severity,
            rule_id=rule.id,
            incident=rule.title or self.incident,
            message=self.message,
            details=details,
            law=rule.law or self.law,
            financial_risk=rule.financial_impact if self.include_financial_risk else None,
            suggested_fix=rule.suggested_fix or self.suggested_fix,
            context=context,
        )


@dataclass(frozen=True)
class PatternRuleCheck(BaseRuleCheck):
    """Fires on the first of the rule's own patterns that matches."""

    def detect(self, rule: Rule, text: str) -> str | None:
        return self.details if rule.first_match(text) is not None else None


@dataclass(frozen=True)
class ShapeRuleCheck(BaseRuleCheck):
    """Fires on built-in shapes; the rule record only gates and grades it."""

    shapes: tuple[re.Pattern[str], ...] = ()

    def detect(self, rule: Rule, text: str) -> str | None:
        for shape in self.shapes:
            if shape.search(text):
                return self.details
        return None


@dataclass(frozen=True)
class ContractRuleCheck(BaseRuleCheck):
    """Fires when a document lacks any element of a required contract."""

    required: tuple[tuple[str, re.Pattern[str]], ...] = field(default_factory=tuple)

    def detect(self, rule: Rule, text: str) -> str | None:
        missing = [label for label, pattern in self.required if not pattern.search(text)]
        if not missing:
            return None
        return f"{self.details}: {', '.join(missing)}"


# ─── Default Table ──────────────────────────────────────────────


def default_checks() -> list[BaseRuleCheck]:
    """The built-in check table, in evaluation order."""
    return [
        PatternRuleCheck(
            rule_id="issue-43",
            finding_type="SECURITY_CONTROL_REMOVAL",
            incident="Issue #43",
            message="SECURITY CONTROL REMOVAL DETECTED",
            details=(
                "You are attempting to remove or modify security controls. "
                "This is the exact pattern behind Issue #43."
            ),
            law="Security controls exist because of previous failures. DO NOT REMOVE.",
            suggested_fix=(
                "1. Stop immediately\n"
                "2. Find out why this security control exists\n"
                "3. Open an issue documenting the reason for the change\n"
                "4. Get explicit approval before proceeding\n"
                "5. Never remove security controls for simplicity"
            ),
        ),
        PatternRuleCheck(
            rule_id="issue-32",
            finding_type="NO_NGINX_LAW",
            incident="Issue #32",
            message="NO NGINX LAW VIOLATED",
            details="You are attempting to add nginx. The application server serves everything.",
            law="NO NGINX - serve static files from the application server",
            suggested_fix=(
                "Serve static assets from the application itself; the container "
                "platform already provides ingress, so no reverse proxy is needed."
            ),
        ),
        ContractRuleCheck(
            rule_id="dayman-nightman-theme",
            finding_type="MISSING_THEME_SYSTEM",
            kind=FindingKind.WARNING,
            incident="DAYMAN/NIGHTMAN Theme",
            message="DAYMAN/NIGHTMAN THEME SYSTEM MISSING",
            details="Customer-facing page is missing theme system elements",
            law="DAYMAN/NIGHTMAN THEME REQUIRED - all customer-facing pages must support theme toggle",
            suggested_fix=(
                "Add :root CSS variables for the dark (NIGHTMAN) default, a "
                "[data-theme='light'] block for DAYMAN, a theme toggle button and "
                "a toggleTheme() function that persists the choice."
            ),
            file_scope=customer_facing_markup,
            include_financial_risk=False,
            required=(
                (":root CSS variables", re.compile(r":root\s*{[\s\S]*?--")),
                ('[data-theme="light"] styles', re.compile(r"\[data-theme=['\"]light['\"]\]")),
                ("toggleTheme() function", re.compile(r"function toggleTheme\(\)")),
                ("DAYMAN reference", re.compile(r"DAYMAN")),
                ("NIGHTMAN reference", re.compile(r"NIGHTMAN")),
            ),
        ),
        PatternRuleCheck(
            rule_id="alpine-base-image",
            finding_type="ALPINE_BASE_IMAGE",
            incident="Alpine Base Image",
            message="BASE IMAGE LAW VIOLATED",
            details="You are attempting to use Alpine Linux. Debian-based images only (node:20-slim).",
            law="BASE IMAGE LAW: DEBIAN ONLY, NEVER ALPINE",
            suggested_fix=(
                "Use a Debian-based image such as node:20-slim. musl libc breaks "
                "native modules, and the size saving disappears once build "
                "dependencies are added."
            ),
        ),
        PatternRuleCheck(
            rule_id="docker-amd64-platform",
            finding_type="DOCKER_AMD64_PLATFORM",
            incident="Docker AMD64 Platform",
            message="DOCKER BUILD LAW VIOLATED",
            details=(
                "You are using docker build without --platform linux/amd64. "
                "ARM hosts default to arm64 images that fail to start in production."
            ),
            law="DOCKER BUILD LAW: ALWAYS AMD64 - use ./build-and-push.sh",
            suggested_fix=(
                "Build through ./build-and-push.sh, or run "
                "docker buildx build --platform linux/amd64 ... --push ."
            ),
            allow=_literal("./build-and-push.sh", "--platform linux/amd64"),
        ),
        PatternRuleCheck(
            rule_id="live-data-law",
            finding_type="HARDCODED_LIVE_DATA",
            incident="Live Data Law",
            message="LIVE DATA LAW VIOLATED",
            details=(
                "You are hardcoding version numbers, metrics, or status data "
                "that should be fetched from APIs."
            ),
            law="LIVE DATA LAW: NO HARDCODED VERSIONS/STATUS EVER",
            suggested_fix=(
                "Fetch the value from /health or /api/version at runtime and "
                "write it into the page, refreshing on an interval."
            ),
            file_scope=live_data_surface,
            allow=_patterns(
                r"fetch\(.*['\"]/(health|api/version)",
                r"getElementById\(.*version",
                r"updateSprintStats",
                r"textContent.*=.*data\.",
                r"// Version from .*API",
            ),
        ),
        ShapeRuleCheck(
            rule_id="git-directory-breakout",
            finding_type="GIT_DIRECTORY_BREAKOUT",
            incident="Issue #95",
            message="DIRECTORY BREAKOUT DETECTED",
            details=(
                "You are using cd ../.. before git commands. This leaves the "
                "current context and breaks directory discipline."
            ),
            law="DIRECTORY DISCIPLINE LAW: execute git from the current directory",
            suggested_fix=(
                "Run git from the current directory and use relative paths "
                "(git add ../../some-file.md) instead of changing directory."
            ),
            include_financial_risk=False,
            shapes=_patterns(
                r"cd\s+(\.\./\.\.|\.\.\\\.\.|\.\./\.\./)\s+&&.*git",
                r"cd\s+\.\.\s+&&\s+cd\s+\.\.\s+&&.*git",
            ),
        ),
    ]
