"""Comparison of application group definitions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from deploymonkey.models import (
    ApplicationDefinition,
    GroupDefinitionRequest,
    Limits,
)

_log = logging.getLogger(__name__)


@dataclass
class AppDiff:
    """A single application difference: what it was and what it is now.

    An application only present on one side has the other side set to None.
    """

    was: ApplicationDefinition | None = None
    now: ApplicationDefinition | None = None

    def describe(self) -> str:
        """Describe in human terms what this difference represents."""
        was, now = self.was, self.now
        if was is None or now is None:
            return f"{was!r} -> {now!r}"
        parts: list[str] = []
        if now.download_url != was.download_url:
            parts.append(f"   DownloadURL {now.download_url} -> {was.download_url} ")
        if now.download_user != was.download_user:
            parts.append(f"   DownloadUser {now.download_user} -> {was.download_user} ")
        if now.download_password != was.download_password:
            parts.append(
                f"    DownloadPassword {now.download_password} -> {was.download_password} "
            )
        if now.binary != was.binary:
            parts.append(f"    Binary {now.binary} -> {was.binary} ")
        if now.build_id != was.build_id:
            parts.append(f"    BuildID {now.build_id} -> {was.build_id} ")
        if now.instances != was.instances:
            parts.append(f"    Instances {now.instances} -> {was.instances} ")
        if now.public != was.public:
            parts.append(f"    Public {now.public} -> {was.public} ")
        text = "".join(parts)
        if not text:
            text = f"Difference in args:\nad1={now!r}\nad2={was!r}\n"
        return f" Difference ({was!r}) {text}"


@dataclass
class Diff:
    """All application differences between two group definitions."""

    app_diffs: list[AppDiff] = field(default_factory=list)


def compare(def1: GroupDefinitionRequest, def2: GroupDefinitionRequest) -> Diff:
    """Work out the differences between two group definitions.

    Applications in def2 without a build id or instance count take those
    from the matching application in def1.
    Raises ValueError if the two definitions are in different namespaces.
    """
    if def1.namespace != def2.namespace:
        raise ValueError(
            "Comparing two different namespaces makes no sense "
            f"({def1.namespace} and {def2.namespace}). Bug?"
        )
    diff = Diff()
    diff.app_diffs.extend(
        AppDiff(was=ad) for ad in _missing_from(def1, def2)
    )
    diff.app_diffs.extend(
        AppDiff(now=ad) for ad in _missing_from(def2, def1)
    )
    for ad1 in def1.applications:
        ad2 = _find_same(def2, ad1)
        if ad2 is None:
            continue
        if ad2.build_id == 0:
            ad2.build_id = ad1.build_id
        if ad2.instances == 0:
            ad2.instances = ad1.instances
        if is_identical(ad1, ad2):
            continue
        diff.app_diffs.append(AppDiff(was=ad2, now=ad1))
    _log.info("Found %d differences", len(diff.app_diffs))
    for app_diff in diff.app_diffs:
        _log.info("Diff: %s", app_diff.describe())
    return diff


def _find_same(
    group: GroupDefinitionRequest, app: ApplicationDefinition
) -> ApplicationDefinition | None:
    return next((other for other in group.applications if is_same(other, app)), None)


def _missing_from(
    source: GroupDefinitionRequest, target: GroupDefinitionRequest
) -> list[ApplicationDefinition]:
    return [
        ad
        for ad in source.applications
        if not any(is_same(ad, other) for other in target.applications)
    ]


def is_auto_registration_identical(
    ad1: ApplicationDefinition, ad2: ApplicationDefinition
) -> bool:
    """True if both applications carry the same set of auto registrations."""

    def keys(ad: ApplicationDefinition) -> set[tuple[str, str, str]]:
        return {(r.portdef, r.service_name, r.api_types) for r in ad.auto_regs}

    return keys(ad1) == keys(ad2)


def are_args_identical(ad1: ApplicationDefinition, ad2: ApplicationDefinition) -> bool:
    """True if every argument of each application is also in the other."""
    return set(ad1.args) == set(ad2.args)


def app_limits_are_identical(
    ad1: ApplicationDefinition, ad2: ApplicationDefinition
) -> bool:
    """True if both applications have the same memory limit."""
    limits1 = ad1.limits or Limits()
    limits2 = ad2.limits or Limits()
    return limits1.max_memory == limits2.max_memory


def is_identical(ad1: ApplicationDefinition, ad2: ApplicationDefinition) -> bool:
    """True if both definitions would result in the same deployment."""
    fields = (
        "download_url",
        "download_user",
        "download_password",
        "binary",
        "build_id",
        "instances",
        "machines",
        "critical",
        "always_on",
        "as_root",
        "static_target_dir",
    )
    if any(getattr(ad1, name) != getattr(ad2, name) for name in fields):
        return False
    return (
        app_limits_are_identical(ad1, ad2)
        and are_args_identical(ad1, ad2)
        and is_auto_registration_identical(ad1, ad2)
    )


def is_same(ad1: ApplicationDefinition, ad2: ApplicationDefinition) -> bool:
    """True if both definitions describe the same application (not necessarily identical)."""
    return ad1.repository_id == ad2.repository_id and ad1.binary == ad2.binary