"""Threshold-triggered alerts for flip and rental results.

Alerts are derived from analysis results and are independent of scoring:
a deal can score well and still carry warnings.
"""

from dataclasses import dataclass
from decimal import Decimal

from reitools.models.results import (
    Alert,
    AlertPriority,
    AlertReport,
    AlertType,
    FlipAnalysis,
    RentalAnalysis,
)

ERROR = AlertType.ERROR
WARNING = AlertType.WARNING
INFO = AlertType.INFO
SUCCESS = AlertType.SUCCESS
HIGH = AlertPriority.HIGH
MEDIUM = AlertPriority.MEDIUM
LOW = AlertPriority.LOW

PRIORITY_RANK = {HIGH: 3, MEDIUM: 2, LOW: 1}
TYPE_RANK = {ERROR: 4, WARNING: 3, INFO: 2, SUCCESS: 1}


@dataclass(frozen=True)
class FlipThresholds:
    min_roi: Decimal = Decimal("0.15")
    excellent_roi: Decimal = Decimal("0.25")
    min_profit: Decimal = Decimal("15000")
    max_timeline: int = 12
    max_rehab_ratio: Decimal = Decimal("0.50")
    min_margin: Decimal = Decimal("0.10")  # Net profit / ARV
    max_purchase_to_arv: Decimal = Decimal("0.80")


@dataclass(frozen=True)
class RentalThresholds:
    min_cash_flow: Decimal = Decimal("100")
    strong_cash_flow: Decimal = Decimal("500")
    min_roi: Decimal = Decimal("0.08")
    min_cap_rate: Decimal = Decimal("0.06")
    min_dscr: Decimal = Decimal("1.0")
    target_dscr: Decimal = Decimal("1.25")
    strong_dscr: Decimal = Decimal("1.5")
    max_vacancy: Decimal = Decimal("0.10")
    max_expense_ratio: Decimal = Decimal("0.50")


def flip_alerts(flip: FlipAnalysis, t: FlipThresholds | None = None) -> list[Alert]:
    t = t or FlipThresholds()
    alerts: list[Alert] = []

    if flip.roi < t.min_roi:
        severity = ERROR if flip.roi < t.min_roi / 2 else WARNING
        alerts.append(Alert(
            type=severity,
            priority=HIGH,
            category="roi",
            message=f"ROI of {flip.roi:.1%} is below the {t.min_roi:.0%} threshold",
            remedy="Negotiate a lower purchase price or reduce rehab costs",
        ))
    elif flip.roi >= t.excellent_roi:
        alerts.append(Alert(
            type=SUCCESS,
            priority=LOW,
            category="roi",
            message=f"ROI of {flip.roi:.1%} exceeds expectations",
        ))

    if flip.net_profit < t.min_profit:
        alerts.append(Alert(
            type=WARNING,
            priority=HIGH,
            category="profit",
            message=f"Projected profit of ${flip.net_profit:,.0f} is below ${t.min_profit:,.0f}",
            remedy="Verify the ARV estimate and look for cost reductions",
        ))

    if flip.arv > 0:
        margin = flip.net_profit / flip.arv
        if Decimal("0") <= margin < t.min_margin:
            alerts.append(Alert(
                type=WARNING,
                priority=MEDIUM,
                category="margin",
                message=f"Profit is only {margin:.1%} of ARV, leaving little room for overruns",
                remedy="Build in a larger cushion for cost overruns or a softer sale price",
            ))

        purchase_ratio = flip.purchase_price / flip.arv
        if purchase_ratio > t.max_purchase_to_arv:
            alerts.append(Alert(
                type=WARNING,
                priority=HIGH,
                category="deal_rule",
                message=f"Purchase price is {purchase_ratio:.0%} of ARV (max {t.max_purchase_to_arv:.0%})",
                remedy=f"Maximum allowable offer under the 70% rule is ${flip.max_allowable_offer:,.0f}",
            ))

    if flip.months > t.max_timeline:
        alerts.append(Alert(
            type=WARNING,
            priority=MEDIUM,
            category="timeline",
            message=f"Timeline of {flip.months} months exceeds {t.max_timeline} months",
            remedy="Long holds increase carrying costs and market risk",
        ))

    if flip.purchase_price > 0:
        rehab_ratio = flip.rehab_cost / flip.purchase_price
        if rehab_ratio > t.max_rehab_ratio:
            alerts.append(Alert(
                type=WARNING,
                priority=HIGH,
                category="rehab",
                message=f"Rehab is {rehab_ratio:.0%} of purchase price (max {t.max_rehab_ratio:.0%})",
                remedy="Verify scope and budget carefully",
            ))

    return alerts


def rental_alerts(
    rental: RentalAnalysis,
    vacancy_rate: Decimal,
    t: RentalThresholds | None = None,
) -> list[Alert]:
    t = t or RentalThresholds()
    alerts: list[Alert] = []
    cash_flow = rental.monthly_cash_flow

    if cash_flow < 0:
        alerts.append(Alert(
            type=ERROR,
            priority=HIGH,
            category="cash_flow",
            message=f"Monthly cash flow of -${abs(cash_flow):,.2f} loses money each month",
            remedy="Increase rent, reduce expenses, or reconsider this investment",
        ))
    elif cash_flow < t.min_cash_flow:
        alerts.append(Alert(
            type=WARNING,
            priority=HIGH,
            category="cash_flow",
            message=f"Monthly cash flow of ${cash_flow:,.2f} is below ${t.min_cash_flow:,.0f}",
            remedy="Increase rent or reduce operating expenses",
        ))
    elif cash_flow >= t.strong_cash_flow:
        alerts.append(Alert(
            type=SUCCESS,
            priority=LOW,
            category="cash_flow",
            message=f"Monthly cash flow of ${cash_flow:,.2f} is strong",
        ))

    coc = rental.cash_on_cash
    if coc is not None and coc < t.min_roi:
        alerts.append(Alert(
            type=ERROR if coc < t.min_roi / 2 else WARNING,
            priority=HIGH,
            category="roi",
            message=f"Cash-on-cash return of {coc:.1%} is below the {t.min_roi:.0%} threshold",
            remedy="Negotiate a lower purchase price or increase rent",
        ))

    if rental.cap_rate < t.min_cap_rate:
        alerts.append(Alert(
            type=WARNING,
            priority=MEDIUM,
            category="cap_rate",
            message=f"Cap rate of {rental.cap_rate:.1%} is below {t.min_cap_rate:.0%}",
            remedy="Property may be overpriced relative to its income",
        ))

    dscr = rental.dscr
    if dscr is not None:
        if dscr < t.min_dscr:
            alerts.append(Alert(
                type=ERROR,
                priority=HIGH,
                category="dscr",
                message=f"DSCR of {dscr:.2f} is below {t.min_dscr:.2f}; may not qualify for financing",
                remedy="Increase the down payment, lower the price, or raise rent",
            ))
        elif dscr < t.target_dscr:
            alerts.append(Alert(
                type=WARNING,
                priority=MEDIUM,
                category="dscr",
                message=f"DSCR of {dscr:.2f} is below the {t.target_dscr:.2f} most lenders require",
                remedy="A larger down payment improves coverage",
            ))
        elif dscr >= t.strong_dscr:
            alerts.append(Alert(
                type=SUCCESS,
                priority=LOW,
                category="dscr",
                message=f"DSCR of {dscr:.2f} indicates strong debt coverage",
            ))

    if vacancy_rate > t.max_vacancy:
        alerts.append(Alert(
            type=WARNING,
            priority=MEDIUM,
            category="vacancy",
            message=f"Vacancy rate of {vacancy_rate:.0%} exceeds {t.max_vacancy:.0%}",
            remedy="Verify local rental demand",
        ))

    if rental.expense_ratio > t.max_expense_ratio:
        alerts.append(Alert(
            type=WARNING,
            priority=MEDIUM,
            category="expenses",
            message=f"Operating expenses are {rental.expense_ratio:.0%} of income (typically under 50%)",
            remedy="Review expenses for reductions",
        ))

    return alerts


def market_alerts(
    rental: RentalAnalysis,
    average_coc: Decimal | None = None,
    average_cap_rate: Decimal | None = None,
) -> list[Alert]:
    """Informational comparison against area averages."""
    alerts: list[Alert] = []
    if average_coc and rental.cash_on_cash is not None:
        diff = (rental.cash_on_cash - average_coc) / average_coc
        if abs(diff) > Decimal("0.05"):
            direction = "above" if diff > 0 else "below"
            alerts.append(Alert(
                type=SUCCESS if diff > 0 else INFO,
                priority=LOW,
                category="market",
                message=f"Cash-on-cash return is {abs(diff):.0%} {direction} the market average",
            ))
    if average_cap_rate:
        diff = (rental.cap_rate - average_cap_rate) / average_cap_rate
        if abs(diff) > Decimal("0.10"):
            direction = "above" if diff > 0 else "below"
            alerts.append(Alert(
                type=INFO,
                priority=LOW,
                category="market",
                message=f"Cap rate is {abs(diff):.0%} {direction} the market average",
            ))
    return alerts


def sort_alerts(alerts: list[Alert]) -> list[Alert]:
    """Highest priority first, then error > warning > info > success."""
    return sorted(alerts, key=lambda a: (PRIORITY_RANK[a.priority], TYPE_RANK[a.type]), reverse=True)


def alert_summary(alerts: list[Alert]) -> dict[str, int]:
    return {
        "total": len(alerts),
        "errors": sum(1 for a in alerts if a.type == ERROR),
        "warnings": sum(1 for a in alerts if a.type == WARNING),
        "info": sum(1 for a in alerts if a.type == INFO),
        "success": sum(1 for a in alerts if a.type == SUCCESS),
        "high_priority": sum(1 for a in alerts if a.priority == HIGH),
    }


def overall_status(summary: dict[str, int]) -> str:
    if summary["errors"]:
        return "CRITICAL"
    if summary["warnings"]:
        return "CAUTION"
    if summary["success"]:
        return "EXCELLENT"
    return "GOOD"


def build_report(alerts: list[Alert]) -> AlertReport:
    ordered = sort_alerts(alerts)
    summary = alert_summary(ordered)
    return AlertReport(alerts=ordered, summary=summary, overall_status=overall_status(summary))


def has_errors(alerts: list[Alert]) -> bool:
    return any(a.type == ERROR for a in alerts)
