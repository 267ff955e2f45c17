"""
Base Rule Class - Abstract interface for all writing rules.
All rules must inherit from this class and implement the required methods.
Provides the exception list and the standard error dictionary format.
"""

from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional
import logging
import os
import yaml

logger = logging.getLogger(__name__)

# Block types that hold technical syntax rather than prose.
CODE_BLOCK_TYPES = ('listing', 'literal', 'code_block', 'inline_code')


class BaseRule(ABC):
    """
    Abstract base class for all writing rules.
    """

    # Class-level cache for exceptions to avoid reading the file for every rule instance.
    _exceptions = None

    def __init__(self) -> None:
        """Initializes the rule and loads the exception configuration."""
        self.rule_type = self._get_rule_type()
        self.severity_levels = ['low', 'medium', 'high']

        # Load exceptions once and cache them at the class level.
        if BaseRule._exceptions is None:
            self._load_exceptions()

    @classmethod
    def _load_exceptions(cls, path: Optional[str] = None):
        """
        Loads the exceptions YAML file and caches it.
        This method is called only once to optimize performance.
        """
        if path is None:
            from config import Config
            path = Config.RULE_EXCEPTIONS_FILE
        try:
            with open(path, 'r', encoding='utf-8') as f:
                exceptions = yaml.safe_load(f)
        except FileNotFoundError:
            logger.warning(f"Exceptions file not found at {path}. No exceptions will be applied.")
            exceptions = {}
        except yaml.YAMLError as e:
            logger.error(f"Error parsing exceptions file {path}: {e}")
            exceptions = {}

        if not isinstance(exceptions, dict):
            logger.warning(f"Exceptions file at {path} is not a valid dictionary. Disabling exceptions.")
            exceptions = {}
        BaseRule._exceptions = exceptions

    def _is_excepted(self, text_span: str) -> bool:
        """
        Checks if a given text span is in the global or rule-specific exception list.
        The check is case-insensitive.

        Args:
            text_span: The word or phrase to check (e.g., "user interface").

        Returns:
            True if the text_span is an exception, False otherwise.
        """
        if not self._exceptions or not text_span:
            return False

        text_span_lower = text_span.lower().strip()

        # 1. Check global exceptions
        global_exceptions = self._exceptions.get('global_exceptions', [])
        if isinstance(global_exceptions, list):
            if text_span_lower in [str(exc).lower() for exc in global_exceptions]:
                return True

        # 2. Check rule-specific exceptions
        rule_specifics = self._exceptions.get('rule_specific_exceptions', {})
        if isinstance(rule_specifics, dict):
            rule_exceptions = rule_specifics.get(self.rule_type, [])
            if isinstance(rule_exceptions, list):
                if text_span_lower in [str(exc).lower() for exc in rule_exceptions]:
                    return True

        return False

    @abstractmethod
    def _get_rule_type(self) -> str:
        """Return the rule type identifier (e.g., 'pattern_rules')."""
        pass

    @abstractmethod
    def analyze(self, text: str, sentences: List[str], nlp=None, context=None) -> List[Dict[str, Any]]:
        """
        Analyze text and return list of errors found.

        Args:
            text: Full text to analyze
            sentences: List of sentences
            nlp: SpaCy nlp object (optional)
            context: Optional context information about the block being analyzed

        Returns:
            List of error dictionaries.
        """
        pass

    @staticmethod
    def _is_code_block(context: Optional[Dict[str, Any]]) -> bool:
        return bool(context) and context.get('block_type') in CODE_BLOCK_TYPES

    def _create_error(self, sentence: str, sentence_index: int, message: str,
                      suggestions: List[str], severity: str = 'medium',
                      **extra_data) -> Dict[str, Any]:
        """
        Create standardized error dictionary.

        Args:
            sentence: The sentence containing the error
            sentence_index: Index of the sentence
            message: Error message
            suggestions: List of suggestions for fixing the error
            severity: Error severity level ('low', 'medium', 'high')
            **extra_data: Additional error data to include

        Returns:
            Error dictionary
        """
        if severity not in self.severity_levels:
            severity = 'medium'

        error = {
            'type': self.rule_type,
            'message': str(message),
            'suggestions': [str(s) for s in suggestions],
            'sentence': str(sentence),
            'sentence_index': int(sentence_index),
            'severity': severity
        }

        for key, value in extra_data.items():
            error[str(key)] = self._make_serializable(value)

        return error

    def _make_serializable(self, data: Any) -> Any:
        """Convert tuples, sets and nested containers into JSON-friendly values."""
        if isinstance(data, dict):
            return {str(k): self._make_serializable(v) for k, v in data.items()}
        if isinstance(data, (list, tuple, set, frozenset)):
            return [self._make_serializable(item) for item in data]
        if data is None or isinstance(data, (str, int, float, bool)):
            return data
        return str(data)
