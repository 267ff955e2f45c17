"""Pattern Rule Checker - Entry Point"""

import argparse
import json
import logging
import sys

import spacy

from config import Config
from rules.patterns import PatternRuleChecker, load_rules

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Check text against declarative pattern rules.")
    parser.add_argument('files', nargs='*', help="Text files to check (default: stdin)")
    parser.add_argument('--rules', default=Config.PATTERN_RULES_FILE, help="YAML rule definition file")
    parser.add_argument('--model', default=Config.SPACY_MODEL, help="spaCy model to load")
    parser.add_argument('--no-fast-reject', action='store_true', help="Match every rule against every sentence")
    parser.add_argument('--list-rules', action='store_true', help="Print the loaded rules and exit")
    return parser.parse_args(argv)


def main(argv=None):
    Config.init_logging()
    args = parse_args(argv)

    rules = load_rules(args.rules)
    if args.list_rules:
        for rule in rules:
            pattern = rule.regex.pattern if rule.regex is not None else rule.to_pattern_string()
            print(f"{rule.rule_id}\t{rule.description}\t{pattern}")
        return 0

    logger.info(f"Loading spaCy model '{args.model}'")
    nlp = spacy.load(args.model)
    checker = PatternRuleChecker(rules, enable_fast_reject=not args.no_fast_reject)

    sources = args.files or ['-']
    errors = []
    for source in sources:
        if source == '-':
            text = sys.stdin.read()
        else:
            with open(source, 'r', encoding='utf-8') as f:
                text = f.read()
        for error in checker.analyze(text, [], nlp=nlp):
            error['source'] = source
            errors.append(error)

    json.dump(errors, sys.stdout, indent=2, ensure_ascii=False)
    sys.stdout.write('\n')
    logger.info(f"{len(errors)} issues found; {checker.skipped_by_fast_reject} rule checks skipped by fast reject")
    return 1 if errors else 0


if __name__ == '__main__':
    sys.exit(main())
