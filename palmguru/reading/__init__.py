"""
Reading 模块 - 手相解读的应用层编排

┌─────────────────────────────────────┐
│     ReadingController (应用层)      │
│     - on_image_captured()           │
│     - analyze() / start_analysis()  │
│     - start_over() / copy_result()  │
├──────────────────┬──────────────────┤
│ ImageInput       │ PalmAnalyzer     │
│ Controller       │                  │
└──────────────────┴──────────────────┘
"""

from .state import ReadingState, ReadingPhase
from .reading_controller import (
    ReadingController,
    NO_IMAGE_MESSAGE,
    ANALYSIS_FAILED_PREFIX,
    COPY_SUCCESS_MESSAGE,
    COPY_FAILURE_MESSAGE
)

__all__ = [
    'ReadingState',
    'ReadingPhase',
    'ReadingController',
    'NO_IMAGE_MESSAGE',
    'ANALYSIS_FAILED_PREFIX',
    'COPY_SUCCESS_MESSAGE',
    'COPY_FAILURE_MESSAGE',
]
