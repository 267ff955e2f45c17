"""
Configuration for the pattern rule checker.
"""

import os
import logging
from dotenv import load_dotenv
from typing import Dict, Any

# Load environment variables (optional - only if .env file exists)
load_dotenv()

_RULES_CONFIG_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'rules', 'config')


class Config:
    """Application configuration."""

    # Logging Configuration
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # SpaCy model settings
    SPACY_MODEL = os.environ.get('SPACY_MODEL', 'en_core_web_sm')

    # Pattern Rules Configuration
    PATTERN_RULES_FILE = os.environ.get('PATTERN_RULES_FILE', os.path.join(_RULES_CONFIG_DIR, 'pattern_rules.yaml'))
    RULE_EXCEPTIONS_FILE = os.environ.get('RULE_EXCEPTIONS_FILE', os.path.join(_RULES_CONFIG_DIR, 'exceptions.yaml'))
    ENABLE_FAST_REJECT = os.environ.get('ENABLE_FAST_REJECT', 'true').lower() == 'true'
    DEFAULT_SEVERITY = os.environ.get('DEFAULT_SEVERITY', 'medium')

    @classmethod
    def init_logging(cls):
        """Configure root logging for command-line use."""
        logging.basicConfig(
            level=getattr(logging, cls.LOG_LEVEL.upper(), logging.INFO),
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    @classmethod
    def get_analysis_config(cls) -> Dict[str, Any]:
        """Get sentence analysis configuration."""
        return {
            'spacy_model': cls.SPACY_MODEL,
        }

    @classmethod
    def get_pattern_rules_config(cls) -> Dict[str, Any]:
        """Get pattern rule configuration."""
        return {
            'rules_file': cls.PATTERN_RULES_FILE,
            'exceptions_file': cls.RULE_EXCEPTIONS_FILE,
            'enable_fast_reject': cls.ENABLE_FAST_REJECT,
            'default_severity': cls.DEFAULT_SEVERITY
        }


# For testing only
class TestingConfig(Config):
    """Testing configuration."""
    LOG_LEVEL = 'DEBUG'
    SPACY_MODEL = 'en_core_web_sm'
    ENABLE_FAST_REJECT = True
