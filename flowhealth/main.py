import argparse
import asyncio
import json
import logging
import sys

from flowhealth.cache import SnapshotCache
from flowhealth.config import load_cache_config, load_poll_config
from flowhealth.controller import PollOutcome
from flowhealth.metrics import Platform, platform_for_url
from flowhealth.page import Page
from flowhealth.router import CoordinatorContext, ExtractorContext
from flowhealth.sources.registry import extractor_for, extractor_for_url
from flowhealth.summary import build_summary

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)

# Exit codes
OK = 0
NO_DATA = 1
UNSUPPORTED = 2


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, sort_keys=True))


def _load_page(args) -> Page:
    page = Page.from_file(args.html, url=args.url)
    logger.info("Loaded %s as %s", args.html, page.url)
    return page


def _pick_extractor(args):
    if args.platform:
        return extractor_for(Platform(args.platform))
    return extractor_for_url(args.url)


def cmd_extract(args) -> int:
    """Run one extraction pass over a saved page."""
    extractor = _pick_extractor(args)
    if extractor is None:
        logger.error("Cannot tell the platform of %s; pass --platform", args.url)
        return UNSUPPORTED

    page = _load_page(args)
    metric_set = extractor.extract(page.snapshot(), page.url)
    if not metric_set.has_signal:
        logger.warning("No metrics found in %s", args.html)
        _print_json({"noData": True, "platform": extractor.platform.value, "sourceUrl": page.url})
        return NO_DATA

    SnapshotCache(load_cache_config()).put(metric_set.platform, metric_set)
    _print_json(metric_set.to_dict())
    return OK


async def _poll(args) -> int:
    extractor = _pick_extractor(args)
    if extractor is None:
        logger.error("Cannot tell the platform of %s; pass --platform", args.url)
        return UNSUPPORTED

    page = _load_page(args)
    cache = SnapshotCache(load_cache_config())
    done = asyncio.Event()
    results = []

    def finished(result):
        results.append(result)
        done.set()

    coordinator = CoordinatorContext()
    context = ExtractorContext(page, extractor, cache, poll_config=load_poll_config(), on_result=finished)
    coordinator.connect("cli", context)

    context.start()
    await done.wait()
    context.stop()

    result = results[-1]
    if result.outcome is not PollOutcome.SUCCESS:
        _print_json({"noData": True, "platform": extractor.platform.value, "attempts": result.attempts})
        return NO_DATA

    metrics = coordinator.snapshots[extractor.platform]
    _print_json({"metrics": metrics, "summary": build_summary(context.last_metrics).to_dict()})
    return OK


def cmd_poll(args) -> int:
    """Poll a saved page with backoff until metrics appear or attempts run out."""
    return asyncio.run(_poll(args))


def cmd_show(args) -> int:
    """Print cached metrics (and their summaries) without touching any page."""
    cache = SnapshotCache(load_cache_config())
    if args.url:
        platform = platform_for_url(args.url)
        if platform is None:
            logger.error("Not on a supported platform: %s", args.url)
            return UNSUPPORTED
        platforms = [platform]
    else:
        platforms = list(Platform)

    output = {}
    for platform in platforms:
        snapshot = cache.get(platform)
        if snapshot is None:
            output[platform.value] = None
            continue
        output[platform.value] = {
            "metrics": snapshot.metric_set.to_dict(),
            "summary": build_summary(snapshot.metric_set).to_dict(),
            "stale": cache.is_stale(snapshot),
        }
    _print_json(output)
    return OK if any(output.values()) else NO_DATA


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="flowhealth", description="Health signal for Zapier and Make dashboards")
    sub = parser.add_subparsers(dest="command", required=True)

    for name, func in (("extract", cmd_extract), ("poll", cmd_poll)):
        p = sub.add_parser(name, help=func.__doc__)
        p.add_argument("html", help="Saved dashboard HTML file")
        p.add_argument("--url", help="URL the page was saved from (used to detect the platform)")
        p.add_argument("--platform", choices=[p.value for p in Platform], help="Override platform detection")
        p.set_defaults(func=func)

    p = sub.add_parser("show", help=cmd_show.__doc__)
    p.add_argument("--url", help="Only show the platform this URL belongs to")
    p.set_defaults(func=cmd_show)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
