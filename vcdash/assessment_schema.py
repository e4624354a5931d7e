"""Due-diligence assessment questionnaire.

Field kinds:
    select   one label from ``options``, scored through ``SELECT_SCORE_MAP``
    rating   integer 1-10 or None
    check    boolean, done / not done
    section  display-only sub-header, never scored or counted
"""
from __future__ import annotations

from dataclasses import dataclass

SECTION = "section"
CHECK = "check"
RATING = "rating"
SELECT = "select"


@dataclass(frozen=True)
class FieldDef:
    id: str
    label: str
    kind: str
    options: tuple[str, ...] = ()

    @property
    def is_real(self) -> bool:
        return self.kind != SECTION


@dataclass(frozen=True)
class Theme:
    id: str
    label: str
    fields: tuple[FieldDef, ...]

    @property
    def real_fields(self) -> tuple[FieldDef, ...]:
        return tuple(f for f in self.fields if f.is_real)

    def field(self, field_id: str) -> FieldDef | None:
        for f in self.fields:
            if f.id == field_id:
                return f
        return None


@dataclass(frozen=True)
class RequiredCall:
    id: str
    label: str
    theme: str
    call_type: str


@dataclass(frozen=True)
class KanbanStage:
    id: str
    label: str
    color: str


ASSESSMENT_THEMES: tuple[Theme, ...] = (
    Theme(
        "founder",
        "Founders & Team",
        (
            FieldDef("_s_founders", "Founders", "section"),
            FieldDef("founderRolesConfirmed", "Confirmed founder roles & complementarity (sales/action vs strategy/planning)", "check"),
            FieldDef("founderMotivation", 'Validated founder motivation & "why this problem"', "check"),
            FieldDef("founderReferenceCalls", "Reference calls done on founders (colleagues, customers, investors)", "check"),
            FieldDef("decisionMakingStyle", "Decision-making style & conflict handling assessed", "check"),
            FieldDef("usAmbitionValidated", "US ambition validated: concrete plan, timing, relocation, hiring", "check"),
            FieldDef("executionDiscipline", "Execution discipline: shipping pace, responsiveness in DD, data room quality", "select", ("Exceptional", "Good", "Mediocre", "Poor")),
            FieldDef("initialResponse", "Initial response time", "select", ("< 1 hour", "< 24 hours", "2-3 days", "> 3 days")),
            FieldDef("camePrepared", "Came prepared to first call?", "select", ("Yes", "No")),
            FieldDef("curveball", "Curveball handling (asked tough questions)", "select", ("Exceptional", "Good", "Mediocre", "Poor")),
            FieldDef("tenYears", "Would work with them for 10 years?", "select", ("Absolutely", "Yes", "Unsure", "No")),
            FieldDef("founderGutScore", "Founder gut score", "rating"),

            FieldDef("_s_org", "Org & Hiring", "section"),
            FieldDef("keyFunctionsMapped", "Mapped key functions: product, eng, data/ML, sales, CSM, ops - identified gaps", "check"),
            FieldDef("techTeamValidated", "Tech team strength validated via technical references / expert validation", "check"),
            FieldDef("hiringFunnel", "Hiring funnel & retention reviewed (especially US sales/CSM)", "check"),
            FieldDef("incentivePlan", "Incentive plan reviewed (equity split, ESOP/BSPCE pool, retention packages)", "check"),
            FieldDef("teamComposition", "Team composition overall", "select", ("Strong", "Decent", "Weak")),

            FieldDef("_s_gov", "Governance & Alignment", "section"),
            FieldDef("capTableReviewed", "Cap table reviewed: preferred terms, liquidation stack, option pool", "check"),
            FieldDef("boardGovernance", "Board/observer rights, governance cadence, info rights confirmed", "check"),
            FieldDef("noSideActivity", "No founder side activity, conflicts, or exit timing misalignment", "check"),
            FieldDef("cofounderDynamics", "Cofounder dynamics", "select", ("Excellent", "Good", "Some tension", "Problematic")),
        ),
    ),
    Theme(
        "market",
        "Market & Competition",
        (
            FieldDef("_s_problem", "Problem Definition & Scope", "section"),
            FieldDef("problemClarity", "Problem clearly defined and scoped", "check"),
            FieldDef("roiLogicValidated", "ROI logic validated (customer savings vs cost of solution)", "check"),
            FieldDef("painIntensity", "Customer pain intensity", "select", ("Hair on fire", "Strong", "Moderate", "Nice to have")),

            FieldDef("_s_tam", "TAM & Segmentation", "section"),
            FieldDef("tamSize", "TAM size", "select", ("< \u20AC100M", "\u20AC100M \u2013 \u20AC1B", "\u20AC1B \u2013 \u20AC10B", "> \u20AC10B")),
            FieldDef("icpSegmented", "ICP clearly segmented (SMB, mid-market, enterprise)", "check"),
            FieldDef("geoReadiness", "Country-by-country readiness assessed (localization, churn by geo)", "check"),
            FieldDef("samRealistic", "SAM is realistic and well-supported", "select", ("Yes", "Somewhat", "No")),

            FieldDef("_s_dynamics", "Market Dynamics", "section"),
            FieldDef("timing", "Market timing", "select", ("Too early", "Right time", "Late")),
            FieldDef("regulatoryRisk", "Regulatory risk", "select", ("Low", "Medium", "High")),
            FieldDef("marketGrowthRate", "Market growth rate", "select", ("Explosive (>30%)", "Fast (15-30%)", "Moderate (5-15%)", "Slow (<5%)")),
            FieldDef("existingBigUSCompetitor", "Existing big US competitor?", "select", ("None", "Weak/indirect", "Strong/direct")),
            FieldDef("cyclicality", "Market cyclicality / macro sensitivity", "select", ("Resilient", "Moderate", "Cyclical")),

            FieldDef("_s_marketRisks", "Market Risks", "section"),
            FieldDef("patternChangeRisk", 'Stress-tested "pattern change" risk (does product adapt?)', "check"),
            FieldDef("platformRisk", "Platform dependency risk (AWS, Apple, regulation)", "select", ("None", "Low", "Medium", "High")),

            FieldDef("_s_landscape", "Competitive Landscape", "section"),
            FieldDef("competitorMapBuilt", "Built competitor map (direct, adjacent, substitutes)", "check"),
            FieldDef("competitiveLandscape", "Competitive density", "select", ("Blue ocean", "Few players", "Crowded", "Red ocean")),
            FieldDef("competitorCallsDone", "Reference calls on named competitors done", "check"),

            FieldDef("_s_diff", "Differentiation", "section"),
            FieldDef("diffValidated", "Differentiation verified with customers (not just founders)", "check"),
            FieldDef("deploymentAdvantage", "Deployment advantage (ease of onboarding, time-to-value)", "select", ("Strong", "Moderate", "Weak", "None")),
            FieldDef("costAdvantage", "Cost advantage vs alternatives", "select", ("Significantly cheaper", "Somewhat cheaper", "Similar", "More expensive")),
            FieldDef("dataMoat", "Data moat / network effects", "select", ("Strong", "Moderate", "Weak", "None")),
            FieldDef("switchingCost", "Customer switching cost", "select", ("Very high", "High", "Medium", "Low")),
            FieldDef("leadAsserted", "Asserted lead (data, model, distribution) verified", "check"),
            FieldDef("marketScore", "Overall market & competition score", "rating"),
        ),
    ),
    Theme(
        "product",
        "Product & Technology",
        (
            FieldDef("_s_workflow", "Workflow & UX", "section"),
            FieldDef("fullDemoDone", "Full product demo done end-to-end", "check"),
            FieldDef("uxQuality", "UX quality", "select", ("Excellent", "Good", "Functional", "Poor")),
            FieldDef("deterrentEffect", "Deterrent / preventive effect validated (not just detection)", "check"),
            FieldDef("privacyCompliant", "Privacy features verified (no facial recognition, data handling)", "check"),

            FieldDef("_s_deploy", "Deployment & Operations", "section"),
            FieldDef("installComplexity", "Install complexity / time-to-value", "select", ("Plug & play", "Easy (<1 day)", "Moderate (days)", "Complex (weeks+)")),
            FieldDef("integrationEase", "Integration with existing customer systems", "select", ("Seamless", "Standard", "Requires work", "Difficult")),
            FieldDef("ongoingSupportNeeds", "Ongoing support needs assessed (CSM burden)", "check"),
            FieldDef("staffAdoption", "End-user / staff adoption friction", "select", ("Very low", "Low", "Medium", "High")),

            FieldDef("_s_roadmap", "Roadmap & Feature Set", "section"),
            FieldDef("currentFeatureSetValidated", "Current feature set validated (customization, rules)", "check"),
            FieldDef("roadmapCredible", "Roadmap is credible and funded", "select", ("Strong", "Reasonable", "Ambitious", "Unrealistic")),
            FieldDef("adjacentUseCases", "Adjacent use cases validated (real roadmap vs vaporware)", "check"),

            FieldDef("_s_model", "Core Tech Performance", "section"),
            FieldDef("detectionAccuracy", "Detection / core accuracy validated and measured", "check"),
            FieldDef("performanceProgression", "Historical performance progression documented", "check"),
            FieldDef("falsePositiveRate", "False positive rate quantified and acceptable", "check"),
            FieldDef("techMoat", "Tech moat strength", "select", ("Strong", "Moderate", "Weak", "None")),

            FieldDef("_s_data", "Data Moat", "section"),
            FieldDef("datasetVerified", "Dataset claims verified (size, diversity, geo coverage)", "check"),
            FieldDef("labelingPipeline", "Labeling / annotation pipeline reviewed (QA, feedback loop)", "check"),
            FieldDef("modelUpdateCadence", "Model update cadence & retraining process documented", "check"),
            FieldDef("dataDefensibility", "Data defensibility vs synthetic data / competitors", "select", ("Strong", "Moderate", "Vulnerable")),

            FieldDef("_s_infra", "Infrastructure & Scalability", "section"),
            FieldDef("scalability", "Scalability", "select", ("Proven at scale", "Likely", "Uncertain", "Unlikely")),
            FieldDef("edgeDeployment", "Edge / on-prem deployment constraints validated", "check"),
            FieldDef("architectureCOGS", "Architecture matches stated COGS (serverless claims etc.)", "check"),
            FieldDef("securityReview", "Security review done (data in transit/at rest, access controls)", "check"),

            FieldDef("_s_ip", "IP & Protection", "section"),
            FieldDef("ipProtection", "IP protection strategy", "select", ("Patents filed", "Trade secret", "Open source core", "None")),
            FieldDef("ipOwnershipClear", "IP ownership clear (code, models, data, contractor assignments)", "check"),
            FieldDef("productTechScore", "Overall product & tech score", "rating"),
        ),
    ),
    Theme(
        "traction",
        "Traction, GTM & Financials",
        (
            FieldDef("_s_customers", "Customer Reality Checks", "section"),
            FieldDef("customerCountReconciled", "Customer count reconciled (active paying vs signed vs churned)", "check"),
            FieldDef("referenceCalls", "Reference calls done (happy, neutral, churned customers)", "check"),
            FieldDef("roiClaimsValidated", "ROI claims validated with real customer data (before/after)", "check"),
            FieldDef("keyMetricsConfirmed", "Key proof-point metrics confirmed via customer evidence", "check"),

            FieldDef("_s_cohorts", "Cohorts & Retention", "section"),
            FieldDef("cohortAnalysisDone", "Cohort analysis done (churn concentration, vintage curves)", "check"),
            FieldDef("churnDrivers", "Churn drivers identified by geo and segment", "check"),
            FieldDef("nrr", "Net Revenue Retention (NRR)", "select", (">130%", "110-130%", "100-110%", "90-100%", "<90%")),
            FieldDef("nrrImprovementPlan", "NRR improvement plan validated (features, pricing, upsells)", "check"),
            FieldDef("logoChurn", "Logo churn (annual)", "select", ("<5%", "5-10%", "10-20%", "20-30%", ">30%")),

            FieldDef("_s_usage", "Usage & Product Stickiness", "section"),
            FieldDef("usageKPIs", "Usage KPIs correlate with retention / ROI", "check"),
            FieldDef("appExperience", "App / UX experience is not a churn bottleneck", "check"),

            FieldDef("_s_funnel", "GTM: Funnel & Efficiency", "section"),
            FieldDef("leadVolumeValidated", "Inbound lead volume and conversion rates validated by geo", "check"),
            FieldDef("cacPayback", "CAC payback period", "select", ("<6 months", "6-12 months", "12-18 months", "18-24 months", ">24 months")),
            FieldDef("salesQuotas", "Sales quotas: historical attainment reviewed", "check"),
            FieldDef("channelMix", "Channel mix (inbound vs outbound vs partners)", "select", ("Mostly inbound", "Balanced", "Mostly outbound", "Partner-led")),

            FieldDef("_s_pricing", "GTM: Pricing & Packaging", "section"),
            FieldDef("pricingStructureReviewed", "Current pricing structure reviewed (subscription + setup)", "check"),
            FieldDef("setupFeeEconomics", "Setup fee economics validated (true cost, sustainability)", "check"),
            FieldDef("pricingPower", "Pricing power", "select", ("Strong", "Moderate", "Weak", "Race to bottom")),

            FieldDef("_s_expansion", "GTM: US / International Expansion", "section"),
            FieldDef("usPlanValidated", "US plan validated: headcount ramp, ARR targets, channels", "check"),
            FieldDef("usOperationalReadiness", "US operational readiness (entity, bank, hiring, compliance)", "check"),
            FieldDef("marketMixUS", "US market segment mix (SMB vs mid-market vs enterprise)", "select", ("Enterprise-focused", "Mid-market", "SMB", "Mixed")),

            FieldDef("_s_current", "Financials: Current Performance", "section"),
            FieldDef("revenueStage", "Revenue stage", "select", ("Pre-revenue", "< \u20AC1M ARR", "\u20AC1M \u2013 \u20AC5M", "\u20AC5M \u2013 \u20AC20M", "> \u20AC20M")),
            FieldDef("arrReconciled", "ARR, gross margin, contribution margin reconciled", "check"),
            FieldDef("grossMarginTrajectory", "Gross margin trajectory validated", "check"),
            FieldDef("growthRate", "YoY growth", "select", ("< 50%", "50% \u2013 100%", "100% \u2013 200%", "> 200%")),

            FieldDef("_s_burn", "Financials: Burn & Runway", "section"),
            FieldDef("burnForecasts", "Cumulative burn forecasts & break-even timing validated", "check"),
            FieldDef("headcountPlan", "Headcount plan reviewed vs productivity assumptions", "check"),
            FieldDef("runway", "Current runway (with this round)", "select", ("24+ months", "18-24 mo", "12-18 mo", "<12 mo")),

            FieldDef("_s_unitEcon", "Financials: Unit Economics", "section"),
            FieldDef("unitEconomics", "Unit economics", "select", ("Proven & strong", "Proven & ok", "Promising", "Unclear", "Negative")),
            FieldDef("ltv2cac", "LTV / CAC ratio", "select", (">5x", "3-5x", "2-3x", "1-2x", "<1x")),
            FieldDef("cacLtvComputed", "CAC, LTV, payback computed from raw inputs", "check"),
            FieldDef("churnVsCSMSpend", "Churn vs CSM spend: confirmed support spend reduces churn", "check"),

            FieldDef("_s_plan", "Financials: Plan Realism", "section"),
            FieldDef("planStressTested", "Growth plan stress-tested (net adds/month, pricing, churn, sales capacity)", "check"),
            FieldDef("fundraisingClean", "Clean fundraising process?", "select", ("Yes", "Mostly", "No")),
            FieldDef("tractionScore", "Overall traction, GTM & financials score", "rating"),
        ),
    ),
    Theme(
        "deal",
        "Deal & Valuation",
        (
            FieldDef("_s_valuation", "Valuation", "section"),
            FieldDef("revenueMultiple", "Revenue multiple method done (inputs, comps)", "check"),
            FieldDef("saasCapSensitivity", 'SaaS "cap" method sensitivity (penalized by low NRR)', "check"),
            FieldDef("valuationFairness", "Valuation fairness", "select", ("Cheap", "Fair", "Expensive", "Overpriced")),

            FieldDef("_s_terms", "Terms", "section"),
            FieldDef("preMoney", "Pre-money, dilution, use of proceeds confirmed", "check"),
            FieldDef("termsReviewed", "Terms reviewed: liq pref, participation, anti-dilution, pro-rata", "check"),
            FieldDef("governanceRights", "Governance / board rights acceptable", "select", ("Favorable", "Standard", "Unfavorable")),

            FieldDef("_s_exit", "Exit Scenarios", "section"),
            FieldDef("exitScenarios", "Exit scenarios mapped (strategic acquirers, financial buyers)", "check"),
            FieldDef("exitTiming", "Exit timing logic (why now / why later)", "check"),
            FieldDef("returnProfile", "Return profile (base case)", "select", (">10x", "5-10x", "3-5x", "2-3x", "<2x")),
            FieldDef("dealScore", "Overall deal score", "rating"),
        ),
    ),
    Theme(
        "legal",
        "Legal, Regulatory & ESG",
        (
            FieldDef("_s_privacy", "Privacy & Surveillance Regulation", "section"),
            FieldDef("gdprCompliance", "GDPR compliance reviewed (DPIA, lawful basis, retention, access rights)", "check"),
            FieldDef("privacyEnforced", "Privacy claims technically enforced and audited", "check"),
            FieldDef("regulatorCorrespondence", "Regulator correspondence reviewed (written evidence, timelines)", "check"),
            FieldDef("regulatoryCompliance", "Overall regulatory compliance", "select", ("Compliant", "In progress", "Non-compliant")),

            FieldDef("_s_commercial", "Commercial & Legal", "section"),
            FieldDef("customerContracts", "Customer contracts reviewed (liability, SLAs, indemnities, termination)", "check"),
            FieldDef("vendorContracts", "Vendor contracts reviewed (hardware, cloud, labeling - assignability)", "check"),
            FieldDef("legalStructure", "Legal structure", "select", ("Clean", "Minor issues", "Major issues")),

            FieldDef("_s_security", "Security", "section"),
            FieldDef("securityPolicy", "Security policy reviewed (incident response, pentests)", "check"),
            FieldDef("soc2Iso", "SOC2 / ISO status", "select", ("Certified", "In progress", "Planned", "None")),

            FieldDef("_s_esg", "ESG & Compliance", "section"),
            FieldDef("socialRisk", "Social risk profile assessed (surveillance, worker monitoring, bias)", "check"),
            FieldDef("governancePolicies", "Governance policies reviewed (ethics, compliance, whistleblowing)", "check"),
            FieldDef("esgRating", "ESG risk level", "select", ("Low", "Medium", "High")),
            FieldDef("conflictsCheck", "Conflicts of interest check done", "check"),
            FieldDef("thresholdFilings", "Required notifications / threshold filings checked", "check"),
            FieldDef("legalScore", "Overall legal & regulatory score", "rating"),
        ),
    ),
)

THEMES_BY_ID: dict[str, Theme] = {t.id: t for t in ASSESSMENT_THEMES}

# Calls that must happen for a complete due diligence
REQUIRED_CALLS: tuple[RequiredCall, ...] = (
    # Founders & Team
    RequiredCall("rc_founder_intro", "First founder call", "founder", "Founder"),
    RequiredCall("rc_founder_ref1", "Founder reference #1 (ex-colleague)", "founder", "Reference"),
    RequiredCall("rc_founder_ref2", "Founder reference #2 (investor/board)", "founder", "Reference"),
    RequiredCall("rc_founder_followup", "Founder follow-up (deep character)", "founder", "Founder"),
    # Market & Competition
    RequiredCall("rc_market_expert", "Industry expert call", "market", "Market"),
    RequiredCall("rc_market_competitor", "Competitor analysis call", "market", "Market"),
    # Product & Technology
    RequiredCall("rc_product_demo", "Full product demo", "product", "Product"),
    RequiredCall("rc_product_cto", "CTO / tech deep-dive", "product", "Product"),
    RequiredCall("rc_product_data", "Data & model review call", "product", "Product"),
    # Traction, GTM & Financials
    RequiredCall("rc_traction_customer1", "Customer reference #1 (happy)", "traction", "Reference"),
    RequiredCall("rc_traction_customer2", "Customer reference #2 (neutral)", "traction", "Reference"),
    RequiredCall("rc_traction_churned", "Churned customer call", "traction", "Reference"),
    RequiredCall("rc_traction_gtm_us", "GTM deep-dive (US expansion)", "traction", "GTM"),
    RequiredCall("rc_traction_financials", "CFO / financials walkthrough", "traction", "Financials"),
    # Deal & Valuation
    RequiredCall("rc_deal_terms", "Terms negotiation call", "deal", "Deal"),
    # Legal
    RequiredCall("rc_legal_review", "Legal DD call (counsel)", "legal", "Legal"),
)

KANBAN_STAGES: tuple[KanbanStage, ...] = (
    KanbanStage("met", "Met", "#10B981"),
    KanbanStage("analysis", "In-Depth Analysis", "#8B5CF6"),
    KanbanStage("committee", "Committee", "#F59E0B"),
)
KANBAN_STAGE_IDS = tuple(s.id for s in KANBAN_STAGES)

# Select option -> score (higher is better)
SELECT_SCORE_MAP: dict[str, int] = {
    # Generic positives
    "Exceptional": 10, "Excellent": 10, "Absolutely": 10, "Strong": 9, "Yes": 9,
    "Proven at scale": 10, "Proven & strong": 10, "Proven": 9, "Plug & play": 10,
    "Seamless": 10, "Cheap": 10, "Favorable": 9, "Certified": 10,
    "Hair on fire": 10, "Blue ocean": 10, "Significantly cheaper": 10,
    "Very high": 10, "Resilient": 10, "Low": 8, "None": 8,
    "Compliant": 9, "Clean": 9, "Clear": 9, "Mostly inbound": 9,
    "Patents filed": 9, ">130%": 10, "<5%": 10, ">5x": 10, ">10x": 10,
    "Explosive (>30%)": 10,

    # Moderate positives
    "Good": 7, "Decent": 7, "Promising": 7, "Moderate": 6, "Somewhat": 6,
    "Likely": 7, "Standard": 7, "Balanced": 7, "In progress": 6,
    "Easy (<1 day)": 8, "Reasonable": 7, "Mostly": 7,
    "Few players": 7, "Somewhat cheaper": 7, "High": 6,
    "Medium": 5, "Some tension": 5, "Acceptable": 6,
    "Partially clear": 5, "Trade secret": 7, "Planned": 4,
    "110-130%": 8, "5-10%": 8, "3-5x": 8, "5-10x": 8,
    "Fast (15-30%)": 8,
    "Right time": 9, "Unsure": 4,

    # Negatives
    "Mediocre": 4, "Weak": 3, "Poor": 2, "No": 2, "Unlikely": 2,
    "Crowded": 3, "Uncertain": 3, "Unclear": 2, "Negative": 1,
    "Red ocean": 1, "Messy": 2, "Complex (weeks+)": 2, "Difficult": 2,
    "Unrealistic": 1, "Overpriced": 2, "Unfavorable": 2,
    "Non-compliant": 1, "Major issues": 1, "Problematic": 1, "Vulnerable": 2,
    "Race to bottom": 1, "Cyclical": 3,
    "10-20%": 5, "20-30%": 3, ">30%": 1, "<90%": 2, "90-100%": 5,
    "100-110%": 7, "1-2x": 3, "<1x": 1, "2-3x": 5, "<2x": 2,
    "Slow (<5%)": 2, "Moderate (5-15%)": 6,
    # CAC payback (shorter = better)
    "<6 months": 10, "6-12 months": 8, "12-18 months": 6, "18-24 months": 4, ">24 months": 2,
    # Runway (longer = better)
    "24+ months": 10, "18-24 mo": 8, "12-18 mo": 5, "<12 mo": 2,

    # Neutral
    "Too early": 4, "Late": 3, "Nice to have": 2,
    "Weak/indirect": 6, "Strong/direct": 2,
    "Similar": 5, "More expensive": 3,
    "Open source core": 5, "Mixed": 6,
    "Enterprise-focused": 7, "Mid-market": 7, "SMB": 5, "Partner-led": 6,
    "Mostly outbound": 5,
}
