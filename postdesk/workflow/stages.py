"""Processing stages shown while a record is analyzed"""

from enum import IntEnum


class ProcessingStage(IntEnum):
    IDLE = 0
    COLLECTION = 1
    PREPROCESSING = 2
    NLP = 3
    CLASSIFICATION = 4
    SENTIMENT = 5

    @property
    def label(self) -> str:
        return STAGE_LABELS[self]


STAGE_LABELS = {
    ProcessingStage.IDLE: 'Idle',
    ProcessingStage.COLLECTION: 'Data collection',
    ProcessingStage.PREPROCESSING: 'Preprocessing',
    ProcessingStage.NLP: 'NLP engine',
    ProcessingStage.CLASSIFICATION: 'Validation & classification',
    ProcessingStage.SENTIMENT: 'Sentiment & urgency',
}

# Cosmetic pause (seconds) once a stage's work is done, before the next stage starts
STAGE_DELAYS = {
    ProcessingStage.COLLECTION: 0.6,
    ProcessingStage.PREPROCESSING: 0.8,
    ProcessingStage.NLP: 0.4,
    ProcessingStage.CLASSIFICATION: 0.4,
    ProcessingStage.SENTIMENT: 0.0,
}
