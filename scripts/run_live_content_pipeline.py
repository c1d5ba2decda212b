from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys
from typing import List


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )


logger = logging.getLogger(__name__)


def _ensure_src_on_path() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    src_path = repo_root / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


_ensure_src_on_path()

from backends import ProviderPool, ProviderPoolConfig
from backends.openai import DEFAULT_BASE_URL, DEFAULT_MODEL, DEFAULT_REQUEST_TIMEOUT
from delivery import ContentRequestRunner, DeliveryConfig
from generation_types import GenerationRequest, RefinementConfig
from pipelines import RefinementOrchestrator
from registry import DEFAULT_REGISTRY

CHUNK_RULE = "\n" + "-" * 60 + "\n"


class CollectingTransport:
    """Transport that keeps delivered messages in order."""

    def __init__(self) -> None:
        self.messages: List[str] = []

    def send_primary(self, text: str) -> None:
        self.messages.append(text)

    def send_followup(self, text: str) -> None:
        self.messages.append(text)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate one structured security learning reply with a real OpenAI-compatible API."
    )
    parser.add_argument(
        "--kind",
        type=str,
        default="explanation",
        choices=DEFAULT_REGISTRY.kinds(),
        help="Content kind to generate.",
    )
    parser.add_argument("--topic", type=str, default="Nmap service discovery in a home lab")
    parser.add_argument("--model", type=str, default=None)
    parser.add_argument(
        "--fallback-model",
        dest="fallback_models",
        action="append",
        default=[],
        help="Fallback model tried after the primary one. Repeat for more.",
    )
    parser.add_argument("--base-url", type=str, default=None)
    parser.add_argument("--temperature", type=float, default=0.3)
    parser.add_argument("--top-p", type=float, default=0.9)
    parser.add_argument("--request-timeout", type=float, default=DEFAULT_REQUEST_TIMEOUT)
    parser.add_argument(
        "--call-deadline",
        type=float,
        default=None,
        help="Optional total seconds per provider call across retries and fallbacks.",
    )
    parser.add_argument("--disable-recovery", action="store_true", help="Skip the recovery pass.")
    parser.add_argument("--no-banner", action="store_true", help="Do not prefix chunks with page banners.")
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Optional output path. If omitted, prints chunks to stdout.",
    )
    parser.add_argument("--verbose", "-v", action="store_true")
    return parser


def main() -> None:
    args = build_parser().parse_args()
    setup_logging(verbose=args.verbose)

    logger.info("Preparing provider pool and runner")
    pool = ProviderPool(
        config=ProviderPoolConfig(
            base_url=args.base_url or DEFAULT_BASE_URL,
            model=args.model or DEFAULT_MODEL,
            fallback_models=tuple(args.fallback_models),
            temperature=args.temperature,
            top_p=args.top_p,
            request_timeout=args.request_timeout,
            call_deadline=args.call_deadline,
        )
    )
    orchestrator = RefinementOrchestrator(
        model=pool,
        config=RefinementConfig(enable_recovery=not args.disable_recovery),
    )
    runner = ContentRequestRunner(
        orchestrator=orchestrator,
        config=DeliveryConfig(),
        add_page_banner=not args.no_banner,
    )

    transport = CollectingTransport()
    outcome = runner.run(GenerationRequest(content_kind=args.kind, user_topic=args.topic), transport)
    logger.info(f"Run finished: status={outcome.status}, chunks={len(transport.messages)}")

    rendered = CHUNK_RULE.join(transport.messages)
    if args.output is None:
        print(rendered)
        return

    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_text(rendered, encoding="utf-8")
    logger.info(f"Written output to: {args.output}")


if __name__ == "__main__":
    main()
