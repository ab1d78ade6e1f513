from __future__ import annotations

from flowhealth.metrics import Platform, platform_for_url
from flowhealth.sources.base import PlatformExtractor
from flowhealth.sources.make import MakeExtractor
from flowhealth.sources.zapier import ZapierExtractor

EXTRACTORS: dict[Platform, type] = {
    Platform.ZAPIER: ZapierExtractor,
    Platform.MAKE: MakeExtractor,
}


def extractor_for(platform: Platform) -> PlatformExtractor:
    return EXTRACTORS[platform]()


def extractor_for_url(url: str | None) -> PlatformExtractor | None:
    platform = platform_for_url(url)
    if platform is None:
        return None
    return extractor_for(platform)
