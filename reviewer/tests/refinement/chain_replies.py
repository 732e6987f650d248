"""
Canned stage replies for refinement chain tests.
"""

S1 = {
    "section_purpose": "Describes how the offer proceeds will be used",
    "key_requirements": ["amount raised", "allocation of proceeds"],
    "section_type": "disclosure",
    "content_length": "detailed",
    "document_context": "Follows the offer terms",
}

S2 = {
    "relevant_guidelines": [
        {"id": "r-2", "relevance_score": 60, "reason": "Timing of use"},
        {"id": "invented", "relevance_score": 99, "reason": "Not a candidate"},
        {"id": "r-1", "relevance_score": 95, "reason": "Use of proceeds must be stated"},
    ]
}

S3_MIXED = {
    "overall_compliance": "compliant",
    "assessment": [
        {"guideline_id": "r-1", "complies": True, "reason": "Allocation is stated"},
        {"guideline_id": "r-2", "complies": False, "reason": "No timetable is given"},
    ],
    "suggestions": ["Add a timetable", "Split by year", "Name the stores", "Extra"],
}

S3_COMPLIANT = {
    "overall_compliance": "non-compliant",
    "assessment": [
        {"guideline_id": "r-1", "complies": True, "reason": "Allocation is stated"},
    ],
    "suggestions": ["Should be dropped"],
}

S4 = {
    "refined_assessment": {
        "overall_compliance": "partially-compliant",
        "key_points": ["No timetable", "Allocation clear", "Third point"],
        "suggestions": ["Add a timetable for store openings"],
    }
}

S5 = {
    "final_assessment": {
        "verdict": (
            "This subsection partially complies because no timetable is given. "
            "It is important to follow best practices."
        ),
        "key_points": ["No timetable", "Consider reviewing the guidelines", "Allocation clear"],
        "suggestions": ["Add a timetable for store openings"],
    }
}

S6 = {
    "relevance_check": {
        "is_relevant": True,
        "adjustments": [],
        "flagged_guideline_ids": ["r-2", "unknown-id"],
    }
}

S7 = {
    "final_response": "Nearly there: add a timetable for the new stores.",
    "compliance": "Partially Compliant",
    "key_points": ["No timetable", "Allocation clear", "Extra"],
    "explanation": "One of two rules met",
}
