"""
Coaching Advice Selection
Picks the single most important coaching cue for a metrics record.
Rules are checked in priority order: straightness, then elbow, then shoulder.
"""

from typing import Callable, List, Tuple

from .bow_zone import LABEL_BALANCED, LABEL_FULL_BOW
from .metrics import MetricsRecord
from .shoulder_tension import LABEL_UNEVEN

AdviceRule = Tuple[Callable[[MetricsRecord], bool], str]


def _status_is(part: str, status: str) -> Callable[[MetricsRecord], bool]:
    def predicate(record: MetricsRecord) -> bool:
        result = getattr(record, part, None)
        return result is not None and result.status == status
    return predicate


def _label_is(part: str, label: str) -> Callable[[MetricsRecord], bool]:
    def predicate(record: MetricsRecord) -> bool:
        result = getattr(record, part, None)
        return result is not None and result.label == label
    return predicate


def _both(first, second) -> Callable[[MetricsRecord], bool]:
    return lambda record: first(record) and second(record)


ADVICE_RULES: List[AdviceRule] = [
    (_status_is("straightness", "bad"),
     "Your bow is curving. Keep it perpendicular to the string all the way to the tip."),
    (_status_is("straightness", "warn"),
     "Your bow drifts slightly. Keep your wrist flexible through the stroke."),
    (_status_is("elbow", "bad"),
     "Your elbow has dropped too low. Raise it to the level of the string you are playing."),
    (_label_is("elbow", "too high"),
     "Your elbow is too high. Let it settle to a natural height without forcing."),
    (_status_is("elbow", "warn"),
     "Try raising your elbow a little."),
    (_status_is("shoulder", "bad"),
     "Your shoulders are tense! Breathe out and let them drop."),
    (_both(_status_is("shoulder", "warn"), _label_is("shoulder", LABEL_UNEVEN)),
     "Your shoulders are at different heights. Check yourself in a mirror."),
    (_status_is("shoulder", "warn"),
     "Your shoulders are creeping up. Try to relax them."),
]

FULL_BOW_MESSAGE = "Great! You are using the whole bow evenly."
BALANCED_MESSAGE = "Good form and a balanced use of the bow. Keep going."
GOOD_FORM_MESSAGE = "Your form looks good. Keep it up."


def select_advice(record: MetricsRecord, rules: List[AdviceRule] = ADVICE_RULES) -> str:
    """Return the message of the first matching rule, or a positive message"""
    for predicate, message in rules:
        if predicate(record):
            return message

    distribution = record.distribution
    if distribution is not None and distribution.label == LABEL_FULL_BOW:
        return FULL_BOW_MESSAGE
    if distribution is not None and distribution.label == LABEL_BALANCED:
        return BALANCED_MESSAGE
    return GOOD_FORM_MESSAGE
