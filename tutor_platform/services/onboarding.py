"""
Tutor onboarding progress.

Steps: 1 basic info, 2 identity document, 3 certificate, 4 teaching info.
Steps may be completed in any order after step 1. Once all four are done the
profile is complete and a DRAFT profile is submitted for review.

These functions are the only writers of current_step, completed_steps,
is_profile_complete and the DRAFT -> SUBMITTED transition.
"""
from tutor_platform.database.database import TutorProfile, TutorProfileStatus

STEP_BASIC_INFO = 1
STEP_IDENTITY = 2
STEP_CERTIFICATE = 3
STEP_TEACHING_INFO = 4

ALL_STEPS = frozenset({STEP_BASIC_INFO, STEP_IDENTITY, STEP_CERTIFICATE, STEP_TEACHING_INFO})
LAST_STEP = STEP_TEACHING_INFO

def next_step(step: int) -> int:
    return min(step + 1, LAST_STEP)

def complete_step(tutor: TutorProfile, step: int) -> bool:
    """Record a finished step. Returns False if it was already recorded."""
    completed = set(tutor.completed_steps or [])
    if step in completed:
        refresh_completion(tutor)
        return False

    completed.add(step)
    # Assign a new list so the JSON column is flagged dirty
    tutor.completed_steps = sorted(completed)
    tutor.current_step = next_step(step)
    refresh_completion(tutor)
    return True

def refresh_completion(tutor: TutorProfile):
    complete = ALL_STEPS.issubset(tutor.completed_steps or [])
    tutor.is_profile_complete = complete
    if complete and tutor.profile_status == TutorProfileStatus.DRAFT:
        tutor.profile_status = TutorProfileStatus.SUBMITTED

def progress(tutor: TutorProfile) -> dict:
    if tutor is None:
        return {"has_profile": False, "current_step": STEP_BASIC_INFO, "completed_steps": [], "is_profile_complete": False}
    return {
        "has_profile": True,
        "current_step": tutor.current_step,
        "completed_steps": sorted(tutor.completed_steps or []),
        "is_profile_complete": tutor.is_profile_complete,
    }
