"""
AI service - prompt enhancement, image generation, speech input and canned answers.
"""

from .rule_table import RuleTable, ResponseRule, build_default_rule_table
from .prompt_enhancer import PromptEnhancer, EnhancementError
from .image_generator import ImageGenerator
from .speech_transcriber import SpeechTranscriber, TranscriptionError
from .error_messages import EmptyImageResult, format_generation_error
from .models import GeneratedImage

__all__ = [
    'RuleTable',
    'ResponseRule',
    'build_default_rule_table',
    'PromptEnhancer',
    'EnhancementError',
    'ImageGenerator',
    'SpeechTranscriber',
    'TranscriptionError',
    'EmptyImageResult',
    'format_generation_error',
    'GeneratedImage'
]
