"""
Run the PII detection pipeline on a UTF-8 text file.

Reads:
  - <input>            document text
  - --deny-list FILE   optional DenyList JSON configuration

Produces:
  - JSON DetectionResult on stdout, or in --output
"""
import argparse
import json
import logging
import sys
from pathlib import Path

from pii_detection.config import settings
from pii_detection.config.constants import SUPPORTED_LANGUAGES
from pii_detection.context.deny_list import deny_list, load_deny_list_file
from pii_detection.pipeline.detection_pipeline import create_default_pipeline

# ---------------------------------------------------------------------------
# Setup logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger("run_detection")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Detect PII in a text document.")
    parser.add_argument("input", type=Path, help="UTF-8 text file")
    parser.add_argument("--language", choices=SUPPORTED_LANGUAGES, default=None,
                        help="document language (detected when omitted)")
    parser.add_argument("--deny-list", type=Path, default=None,
                        help="DenyList JSON configuration")
    parser.add_argument("--document-id", default=None)
    parser.add_argument("--output", type=Path, default=None,
                        help="write JSON here instead of stdout")
    parser.add_argument("--redact", action="store_true",
                        help="replace entity text with type markers")
    parser.add_argument("--with-ner", action="store_true",
                        help=f"run the spaCy model ({settings.SPACY_MODEL}) as well")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    text = args.input.read_text(encoding="utf-8")
    logger.info("input             : %s (%d chars)", args.input, len(text))

    if args.deny_list:
        load_deny_list_file(args.deny_list, deny_list)
        logger.info("deny list         : %s", args.deny_list)

    ner = None
    if args.with_ner:
        from pii_detection.ml.spacy_adapter import SpacyNerAdapter
        ner = SpacyNerAdapter()

    pipeline = create_default_pipeline(ner=ner)
    result = pipeline.process(text, document_id=args.document_id, language=args.language)

    payload = json.dumps(result.to_dict(redact=args.redact), indent=2, ensure_ascii=False)
    if args.output:
        args.output.write_text(payload, encoding="utf-8")
        logger.info("output            : %s", args.output)
    else:
        sys.stdout.write(payload + "\n")

    logger.info("document_id       : %s", result.document_id)
    logger.info("language          : %s", result.language)
    logger.info("entities          : %d (%d flagged)",
                len(result.entities), result.metadata.flagged_count)
    for entity_type, count in sorted(result.metadata.entity_counts.items()):
        logger.info("  %-16s: %d", entity_type, count)
    logger.info("duration          : %.1f ms", result.metadata.total_duration_ms)
    return 0


if __name__ == "__main__":
    sys.exit(main())
