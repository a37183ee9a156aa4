#!/usr/bin/env python3
"""
Main entrypoint for the transcript segment writer.

Replays a stream of transcription events for one contact through a
SegmentWriter:
1. Stores every eligible result in Qdrant
2. Translates finalized text and sends it to the contact's queue

Usage:
    # Events recorded as JSON lines:
    export CONTACT_ID="contact-id"
    export QUEUE_URL="https://queue.example.com/contact-transcripts"
    python -m segment_writer.main --events events.jsonl

    # With in-memory store, mock clients and simulated events:
    python -m segment_writer.main --mock

Environment Variables:
    CONTACT_ID: Contact whose transcript is being written
    QUEUE_URL: Destination queue for translated final segments
    TRANSLATE_API_URL: (optional) Translation service base URL
    TRANSCRIPT_TABLE_NAME: (optional) Storage table, default: contact_transcript_segments
    SAVE_PARTIAL_TRANSCRIPTS: (optional) "true" to store partial results
    CONSOLE_LOG_TRANSCRIPT: (optional) "true" to echo segments to the log
    SOURCE_LANGUAGE: (optional) default: en
    TARGET_LANGUAGE: (optional) default: es
    RETENTION_DAYS: (optional) Days before a segment may expire, default: 7
    QDRANT_HOST: (optional) Qdrant host, default: localhost
    QDRANT_PORT: (optional) Qdrant port, default: 6333
"""

import argparse
import logging
import os
import sys

from .event_source import MockTranscriptSource, read_events
from .queue_client import MockQueueClient, QueueClient
from .segment_store import DEFAULT_TABLE_NAME, SegmentStore
from .translate_client import MockTranslateClient, TranslateClient
from .writer import SegmentWriter, WriterConfig

logger = logging.getLogger(__name__)


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "false").strip().lower() == "true"


def get_config() -> dict:
    """Load configuration from environment variables."""
    return {
        "contact_id": os.environ.get("CONTACT_ID"),
        "queue_url": os.environ.get("QUEUE_URL"),
        "translate_api_url": os.environ.get("TRANSLATE_API_URL"),
        "table_name": os.environ.get("TRANSCRIPT_TABLE_NAME", DEFAULT_TABLE_NAME),
        "save_partial_transcripts": _env_flag("SAVE_PARTIAL_TRANSCRIPTS"),
        "console_log_transcript": _env_flag("CONSOLE_LOG_TRANSCRIPT"),
        "source_language": os.environ.get("SOURCE_LANGUAGE", "en"),
        "target_language": os.environ.get("TARGET_LANGUAGE", "es"),
        "retention_days": float(os.environ.get("RETENTION_DAYS", "7")),
        "qdrant_host": os.environ.get("QDRANT_HOST", "localhost"),
        "qdrant_port": int(os.environ.get("QDRANT_PORT", "6333")),
    }


def validate_config(config: dict, use_mock: bool) -> bool:
    """Validate required configuration."""
    if not use_mock:
        if not config["contact_id"]:
            logger.error("CONTACT_ID environment variable is required")
            return False
        if not config["queue_url"]:
            logger.error("QUEUE_URL environment variable is required")
            return False
    if config["retention_days"] <= 0:
        logger.error("RETENTION_DAYS must be positive")
        return False
    return True


def build_writer_config(config: dict) -> WriterConfig:
    return WriterConfig(
        save_partial_transcripts=config["save_partial_transcripts"],
        console_log_transcript=config["console_log_transcript"],
        source_language=config["source_language"],
        target_language=config["target_language"],
        retention_seconds=int(config["retention_days"] * 24 * 3600),
    )


def main(argv=None):
    """Main entrypoint."""
    parser = argparse.ArgumentParser(
        description="Transcript Segment Writer"
    )
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Use in-memory store, mock clients and simulated events",
    )
    parser.add_argument(
        "--events",
        default="-",
        help="JSON-lines file of transcription events ('-' for stdin)",
    )
    parser.add_argument(
        "--max-events",
        type=int,
        default=None,
        help="Stop after this many events",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Load config
    config = get_config()

    if not validate_config(config, args.mock):
        sys.exit(1)

    # Initialize clients
    if args.mock:
        logger.info("Using in-memory store and mock clients for testing")
        contact_id = config["contact_id"] or "mock-contact-001"
        segment_store = SegmentStore(location=":memory:")
        translate_client = MockTranslateClient()
        queue_client = MockQueueClient()
        events = MockTranscriptSource().events()
    else:
        contact_id = config["contact_id"]
        try:
            stream = sys.stdin if args.events == "-" else open(args.events, encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to open events file {args.events}: {e}")
            sys.exit(1)
        try:
            segment_store = SegmentStore(
                host=config["qdrant_host"],
                port=config["qdrant_port"],
            )
        except Exception as e:
            logger.error(f"Failed to connect to Qdrant: {e}")
            if stream is not sys.stdin:
                stream.close()
            sys.exit(1)
        translate_client = TranslateClient(base_url=config["translate_api_url"])
        queue_client = QueueClient(queue_url=config["queue_url"])
        events = read_events(stream)

    writer = SegmentWriter(
        contact_id=contact_id,
        segment_store=segment_store,
        translate_client=translate_client,
        queue_client=queue_client,
        config=build_writer_config(config),
    )

    logger.info("=" * 60)
    logger.info("Transcript Segment Writer")
    logger.info(f"Contact ID: {contact_id}")
    logger.info(f"Table: {config['table_name']}")
    logger.info(f"Save partial transcripts: {config['save_partial_transcripts']}")
    logger.info(f"Mode: {'Mock' if args.mock else 'Live'}")
    logger.info("=" * 60)

    processed = 0
    try:
        for event in events:
            writer.process_event(event, config["table_name"])
            processed += 1
            if args.max_events and processed >= args.max_events:
                logger.info(f"Reached max events ({args.max_events}), stopping")
                break
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
    finally:
        writer.log_final_stats()
        if not args.mock and args.events != "-":
            stream.close()
        translate_client.close()
        queue_client.close()
        segment_store.close()
        logger.info("Shutdown complete")


if __name__ == "__main__":
    main()
