"""Analysis routes: full deal analysis, what-if scenarios and risk simulation."""

from fastapi import APIRouter, Depends, HTTPException

from reitools.analyzer import DealAnalyzer
from reitools.api.deps import get_analyzer
from reitools.api.schemas import (
    AlertResponse,
    AnalysisResponse,
    AnalyzeRequest,
    ARVResponse,
    BreakEvenResponse,
    BRRRRResponse,
    CompQualityResponse,
    CompStatisticsResponse,
    FlipResponse,
    HoldResponse,
    LoanScenarioResponse,
    MonteCarloRequest,
    MonteCarloResponse,
    RentalResponse,
    ScenarioRequest,
    ScenarioResponse,
    ScoreResponse,
    SensitivityResponse,
    SuggestionResponse,
    TaxBenefitsResponse,
)
from reitools.engine.montecarlo import run_monte_carlo
from reitools.engine.scenario import run_scenarios, sensitivity_matrix
from reitools.models.results import DealAnalysis

router = APIRouter(prefix="/api/v1", tags=["analysis"])


def _result_to_response(address: str, result: DealAnalysis) -> AnalysisResponse:
    """Convert engine DealAnalysis to API response."""
    return AnalysisResponse(
        address=address,
        data_source=result.data_source,
        comp_count=result.comp_count,
        recommendation=result.recommendation,
        overall_status=result.alerts.overall_status,
        arv=ARVResponse.model_validate(result.arv),
        flip=FlipResponse.model_validate(result.flip),
        rental=RentalResponse.model_validate(result.rental),
        brrrr=BRRRRResponse.model_validate(result.brrrr) if result.brrrr else None,
        flip_score=ScoreResponse.model_validate(result.flip_score),
        rental_score=ScoreResponse.model_validate(result.rental_score),
        alerts=[AlertResponse.model_validate(a) for a in result.alerts.alerts],
        insights=result.insights,
        suggestions=[SuggestionResponse.model_validate(s) for s in result.suggestions],
        monte_carlo=(
            MonteCarloResponse.model_validate(result.monte_carlo) if result.monte_carlo else None
        ),
        hold=HoldResponse.model_validate(result.hold) if result.hold else None,
        break_even=BreakEvenResponse.model_validate(result.break_even) if result.break_even else None,
        loan_comparison=[LoanScenarioResponse.model_validate(s) for s in result.loan_comparison],
        tax_benefits=(
            TaxBenefitsResponse.model_validate(result.tax_benefits) if result.tax_benefits else None
        ),
        comp_quality=(
            CompQualityResponse.model_validate(result.comp_quality) if result.comp_quality else None
        ),
        comp_statistics=(
            CompStatisticsResponse.model_validate(result.comp_statistics)
            if result.comp_statistics
            else None
        ),
    )


@router.post("/analyze", response_model=AnalysisResponse)
async def analyze(
    req: AnalyzeRequest,
    analyzer: DealAnalyzer = Depends(get_analyzer),
):
    """Primary endpoint: address + assumptions → full analysis.

    Orchestrates: comps waterfall → ARV → flip/rental → scoring → optional Monte-Carlo.
    """
    query = req.to_query()
    try:
        result = await analyzer.analyze(
            query,
            req.inputs.to_inputs(),
            force_refresh=req.force_refresh,
            external_estimates=req.external_estimates,
            monte_carlo_trials=req.monte_carlo_trials or None,
            seed=req.seed,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _result_to_response(query.full, result)


@router.post("/scenario", response_model=list[ScenarioResponse])
def scenario(req: ScenarioRequest):
    """Re-run the analysis under each adjustment and report deltas from base."""
    results = run_scenarios(
        req.inputs.to_inputs().clamped(), req.arv, [a.to_adjustment() for a in req.adjustments]
    )
    return [
        ScenarioResponse(
            name=r.adjustment.name,
            net_profit=r.flip.net_profit,
            roi=r.flip.roi,
            monthly_cash_flow=r.rental.monthly_cash_flow,
            deltas=r.deltas,
        )
        for r in results
    ]


@router.post("/sensitivity", response_model=SensitivityResponse)
def sensitivity(req: ScenarioRequest):
    """Net flip profit over the ARV x rehab grid."""
    return SensitivityResponse.model_validate(
        sensitivity_matrix(req.inputs.to_inputs().clamped(), req.arv)
    )


@router.post("/monte-carlo", response_model=MonteCarloResponse)
def monte_carlo(req: MonteCarloRequest):
    """Risk simulation. A capped or timed-out batch comes back with truncated=true."""
    result = run_monte_carlo(
        req.inputs.to_inputs().clamped(), req.arv, trials=req.trials, seed=req.seed
    )
    return MonteCarloResponse.model_validate(result)
