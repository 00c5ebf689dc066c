"""
Built-in sample bills served, clearly labelled as mock data, when Congress.gov
credentials are missing or rejected.
"""

from typing import List

from civicpulse.models.schemas import BillRecord

SAMPLE_BILLS: List[BillRecord] = [
    BillRecord(
        id="118-HR-2024",
        congress=118,
        bill_type="HR",
        number="2024",
        title="Federal Abortion Rights Protection Act",
        sponsor="Rep. Anna Davis (D-CA)",
        sponsor_party="D",
        introduced_date="2024-01-15",
        latest_action_text="Passed House",
        latest_action_date="2024-03-02",
        summary="Codifies access to reproductive health care nationwide and preempts conflicting state restrictions.",
        policy_area="Health",
        tags=["Health", "Reproductive rights"],
    ),
    BillRecord(
        id="118-S-3041",
        congress=118,
        bill_type="S",
        number="3041",
        title="Border Security Enhancement Act",
        sponsor="Sen. Michael Johnson (R-TX)",
        sponsor_party="R",
        introduced_date="2024-02-01",
        latest_action_text="Referred to the Committee on Homeland Security",
        latest_action_date="2024-02-05",
        summary="Funds additional border patrol agents, surveillance technology and physical barriers along the southern border.",
        policy_area="Immigration",
        tags=["Immigration", "Border security"],
    ),
    BillRecord(
        id="118-HR-5555",
        congress=118,
        bill_type="HR",
        number="5555",
        title="Universal Background Check Act",
        sponsor="Rep. Sarah Martinez (D-CO)",
        sponsor_party="D",
        introduced_date="2024-01-20",
        latest_action_text="Passed House",
        latest_action_date="2024-04-11",
        summary="Requires a background check for every firearm sale, including private and online transfers.",
        policy_area="Crime and Law Enforcement",
        tags=["Crime and Law Enforcement", "Firearms"],
    ),
    BillRecord(
        id="118-HR-3684",
        congress=118,
        bill_type="HR",
        number="3684",
        title="Infrastructure Investment and Jobs Act",
        sponsor="Rep. Peter DeFazio (D-OR)",
        sponsor_party="D",
        introduced_date="2024-03-01",
        latest_action_text="Became Public Law",
        latest_action_date="2024-05-15",
        summary="Authorizes funds for roads, bridges, rail, broadband and water infrastructure.",
        policy_area="Transportation and Public Works",
        tags=["Transportation and Public Works", "Infrastructure"],
    ),
    BillRecord(
        id="118-S-1120",
        congress=118,
        bill_type="S",
        number="1120",
        title="Clean Energy Transition Act",
        sponsor="Sen. Carol Williams (D-NY)",
        sponsor_party="D",
        introduced_date="2024-02-15",
        latest_action_text="Referred to the Committee on Energy and Natural Resources",
        latest_action_date="2024-02-20",
        summary="Accelerates the transition to renewable energy sources and sets carbon reduction targets for 2030.",
        policy_area="Energy",
        tags=["Energy", "Climate change"],
    ),
]
