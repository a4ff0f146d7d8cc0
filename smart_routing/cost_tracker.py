"""
Spend tracking for routed traffic.

Accumulates paygo spend by role, model and billing mode, checks it against
daily/monthly ceilings, raises budget alerts and suggests cheaper
same-provider substitutions. Subscription traffic is tracked at zero cost.
"""

from __future__ import annotations

import copy
import logging
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from .types import ROLE_ORDER, AgentRole, BillingMode, BudgetEnforcement, CandidateModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CostBudget:
    """Paygo spend ceilings in USD."""

    daily_usd_limit: float | None = None
    monthly_usd_limit: float | None = None
    enforcement: BudgetEnforcement = BudgetEnforcement.SOFT


@dataclass
class CostUsageSnapshot:
    """Running spend totals."""

    daily_usd: float = 0.0
    monthly_usd: float = 0.0
    by_role: dict[AgentRole, float] = field(default_factory=dict)
    by_model: dict[str, float] = field(default_factory=dict)
    by_billing_mode: dict[BillingMode, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "daily_usd": self.daily_usd,
            "monthly_usd": self.monthly_usd,
            "by_role": {r.value: self.by_role[r] for r in ROLE_ORDER if r in self.by_role},
            "by_model": dict(sorted(self.by_model.items())),
            "by_billing_mode": {m.value: v for m, v in self.by_billing_mode.items()},
        }


@dataclass(frozen=True)
class BudgetCheck:
    """Result of a budget check; messages are populated on any breach."""

    ok: bool
    messages: list[str]


@dataclass
class BudgetAlert:
    """Alert when a spend threshold is crossed."""

    threshold_name: str
    threshold_value: float
    current_value: float
    message: str
    severity: str  # "warning", "critical"
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class CostOptimizationSuggestion:
    """Advisory cheaper same-provider replacement for a role's model."""

    role: AgentRole
    from_model: str
    to_model: str
    estimated_daily_savings_usd: float
    reason: str


def usage_cost_usd(
    billing_mode: BillingMode,
    input_tokens: int,
    output_tokens: int,
    candidate: CandidateModel | None = None,
) -> float:
    """USD cost of one call; subscription traffic and unknown models cost nothing."""
    if billing_mode == BillingMode.SUBSCRIPTION or candidate is None:
        return 0.0
    return (input_tokens + output_tokens) / 1_000_000 * candidate.blended_cost


class CostTracker:
    """
    Track paygo spend across routed calls.

    Provides:
    - Spend totals by role, model and billing mode
    - Daily/monthly budget checks with hard or soft enforcement
    - Budget alerts with callbacks
    - Cheaper same-provider substitution suggestions
    """

    def __init__(self, budget: CostBudget | None = None, warning_threshold: float = 0.8):
        """
        Initialize cost tracker.

        Args:
            budget: Spend ceilings and enforcement mode
            warning_threshold: Fraction of a ceiling that triggers a warning alert
        """
        self.budget = budget or CostBudget()
        self.warning_threshold = warning_threshold

        self._usage = CostUsageSnapshot()
        self._calls = 0
        self._alerts: list[BudgetAlert] = []
        self._alert_callbacks: list[Callable[[BudgetAlert], None]] = []

    def record_usage(
        self,
        role: AgentRole,
        model: str,
        billing_mode: BillingMode,
        input_tokens: int,
        output_tokens: int,
        candidate: CandidateModel | None = None,
    ) -> float:
        """
        Record one routed call.

        Args:
            role: Role that made the call
            model: Model id that served it
            billing_mode: How the call is billed
            input_tokens: Prompt tokens
            output_tokens: Completion tokens
            candidate: Catalog entry supplying per-token prices

        Returns:
            USD charged for the call
        """
        usd = usage_cost_usd(billing_mode, input_tokens, output_tokens, candidate)

        usage = self._usage
        usage.daily_usd += usd
        usage.monthly_usd += usd
        usage.by_role[role] = usage.by_role.get(role, 0.0) + usd
        usage.by_model[model] = usage.by_model.get(model, 0.0) + usd
        usage.by_billing_mode[billing_mode] = usage.by_billing_mode.get(billing_mode, 0.0) + usd
        self._calls += 1

        self._check_thresholds()
        return usd

    def get_usage(self) -> CostUsageSnapshot:
        """Independent copy of the running totals."""
        return copy.deepcopy(self._usage)

    def check_budget(self) -> BudgetCheck:
        """
        Compare spend to the ceilings.

        Breaches always produce a message; only hard enforcement turns them
        into a failed check.
        """
        messages: list[str] = []
        ok = True
        blocking = self.budget.enforcement == BudgetEnforcement.HARD

        daily_limit = self.budget.daily_usd_limit
        if daily_limit is not None and self._usage.daily_usd > daily_limit:
            messages.append(
                f"Daily budget exceeded: {self._usage.daily_usd:.3f} > {daily_limit:.3f}"
            )
            ok = ok and not blocking

        monthly_limit = self.budget.monthly_usd_limit
        if monthly_limit is not None and self._usage.monthly_usd > monthly_limit:
            messages.append(
                f"Monthly budget exceeded: {self._usage.monthly_usd:.3f} > {monthly_limit:.3f}"
            )
            ok = ok and not blocking

        for message in messages:
            logger.warning(message)
        return BudgetCheck(ok=ok, messages=messages)

    def suggest_optimizations(
        self,
        assignments: Mapping[AgentRole, str],
        catalog: Iterable[CandidateModel],
    ) -> list[CostOptimizationSuggestion]:
        """
        Suggest the cheapest cheaper model from the same provider per role.

        Advisory only; nothing is changed.
        """
        catalog = list(catalog)
        by_id = {c.model_id: c for c in catalog}
        suggestions: list[CostOptimizationSuggestion] = []

        for role in ROLE_ORDER:
            model_id = assignments.get(role)
            if not model_id:
                continue
            current = by_id.get(model_id)
            if current is None:
                continue

            same_provider = sorted(
                (c for c in catalog if c.provider_id == current.provider_id),
                key=lambda c: (c.blended_cost, c.model_id),
            )
            cheaper = next(
                (c for c in same_provider if c.blended_cost < current.blended_cost), None
            )
            if cheaper is None:
                continue

            savings = current.blended_cost - cheaper.blended_cost
            if savings <= 0:
                continue
            suggestions.append(
                CostOptimizationSuggestion(
                    role=role,
                    from_model=current.model_id,
                    to_model=cheaper.model_id,
                    estimated_daily_savings_usd=round(savings, 3),
                    reason="Cheaper same-provider model detected for cost pressure mode",
                )
            )

        return suggestions

    def _check_thresholds(self) -> None:
        """Emit alerts for ceilings that are near or past."""
        for scope, spent, limit in (
            ("daily", self._usage.daily_usd, self.budget.daily_usd_limit),
            ("monthly", self._usage.monthly_usd, self.budget.monthly_usd_limit),
        ):
            if not limit or limit <= 0:
                continue
            fraction = spent / limit
            if fraction >= 1.0:
                self._emit_alert(
                    f"{scope}_budget",
                    limit,
                    spent,
                    f"{scope.capitalize()} budget exceeded: ${spent:.2f} / ${limit:.2f}",
                    "critical",
                )
            elif fraction >= self.warning_threshold:
                self._emit_alert(
                    f"{scope}_warning",
                    limit * self.warning_threshold,
                    spent,
                    f"Approaching {scope} budget: ${spent:.2f} / ${limit:.2f} ({fraction:.0%})",
                    "warning",
                )

    def _emit_alert(
        self,
        name: str,
        threshold: float,
        current: float,
        message: str,
        severity: str,
    ) -> None:
        """Emit a budget alert once per (name, severity)."""
        for alert in self._alerts:
            if alert.threshold_name == name and alert.severity == severity:
                return

        alert = BudgetAlert(
            threshold_name=name,
            threshold_value=threshold,
            current_value=current,
            message=message,
            severity=severity,
        )
        self._alerts.append(alert)
        logger.warning(f"Budget alert ({severity}): {message}")

        for callback in self._alert_callbacks:
            callback(alert)

    def on_alert(self, callback: Callable[[BudgetAlert], None]) -> None:
        """Register callback for budget alerts."""
        self._alert_callbacks.append(callback)

    @property
    def alerts(self) -> list[BudgetAlert]:
        return list(self._alerts)

    @property
    def remaining_daily_budget(self) -> float | None:
        limit = self.budget.daily_usd_limit
        if limit is None:
            return None
        return max(0.0, limit - self._usage.daily_usd)

    @property
    def remaining_monthly_budget(self) -> float | None:
        limit = self.budget.monthly_usd_limit
        if limit is None:
            return None
        return max(0.0, limit - self._usage.monthly_usd)

    def get_summary(self) -> dict[str, Any]:
        """Get complete spend summary."""
        return {
            **self._usage.to_dict(),
            "calls": self._calls,
            "enforcement": self.budget.enforcement.value,
            "daily_usd_limit": self.budget.daily_usd_limit,
            "monthly_usd_limit": self.budget.monthly_usd_limit,
            "remaining_daily_usd": self.remaining_daily_budget,
            "remaining_monthly_usd": self.remaining_monthly_budget,
            "alerts": [
                {"name": a.threshold_name, "message": a.message, "severity": a.severity}
                for a in self._alerts
            ],
        }

    def format_report(self) -> str:
        """Format a human-readable spend report."""
        usage = self._usage
        lines = ["Cost Report"]

        daily_limit = self.budget.daily_usd_limit
        monthly_limit = self.budget.monthly_usd_limit
        lines.append(
            f"  Daily:   ${usage.daily_usd:.4f}"
            + (f" / ${daily_limit:.2f}" if daily_limit is not None else "")
        )
        lines.append(
            f"  Monthly: ${usage.monthly_usd:.4f}"
            + (f" / ${monthly_limit:.2f}" if monthly_limit is not None else "")
        )
        lines.append(f"  Calls: {self._calls}")

        if usage.by_role:
            lines.append("  By role:")
            for role in ROLE_ORDER:
                if role in usage.by_role:
                    lines.append(f"    {role.value}: ${usage.by_role[role]:.4f}")

        if usage.by_model:
            lines.append("  By model:")
            for model, usd in sorted(usage.by_model.items()):
                lines.append(f"    {model}: ${usd:.4f}")

        if self._alerts:
            lines.append("  Alerts:")
            for alert in self._alerts:
                icon = "!!" if alert.severity == "critical" else "!"
                lines.append(f"    {icon} {alert.message}")

        return "\n".join(lines)

    def reset_daily(self) -> None:
        """Start a new day: clear daily spend and daily alerts."""
        self._usage.daily_usd = 0.0
        self._alerts = [a for a in self._alerts if not a.threshold_name.startswith("daily")]

    def reset(self) -> None:
        """Reset all tracking."""
        self._usage = CostUsageSnapshot()
        self._calls = 0
        self._alerts.clear()


__all__ = [
    "BudgetAlert",
    "BudgetCheck",
    "BudgetEnforcement",
    "CostBudget",
    "CostOptimizationSuggestion",
    "CostTracker",
    "CostUsageSnapshot",
    "usage_cost_usd",
]
