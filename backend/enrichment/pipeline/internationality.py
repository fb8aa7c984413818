"""Internationality classification of a trip destination.

A keyword heuristic decides first; an optional oracle may override it. Results
are memoized per normalized destination for the lifetime of the classifier.
"""

import logging

from backend.enrichment.ports import InternationalityOracle

logger = logging.getLogger(__name__)

DOMESTIC_KEYWORDS: tuple[str, ...] = (
    "中国", "china", "prc",
    "省", "自治区", "特别行政区",
    "北京", "beijing", "上海", "shanghai", "广州", "guangzhou", "深圳", "shenzhen",
    "杭州", "hangzhou", "成都", "chengdu", "重庆", "chongqing", "西安", "xi'an", "xian",
    "南京", "nanjing", "苏州", "suzhou", "武汉", "wuhan", "天津", "tianjin",
    "厦门", "xiamen", "青岛", "qingdao", "三亚", "sanya", "丽江", "lijiang",
    "桂林", "guilin", "昆明", "kunming", "大理", "dali", "拉萨", "lhasa",
    "香港", "hong kong", "澳门", "macau", "macao",
)

# Latin entries match as lower-cased substrings, Han entries as literal substrings.
FOREIGN_KEYWORD_GROUPS: dict[str, tuple[tuple[str, ...], tuple[str, ...]]] = {
    "japan": (
        ("japan", "tokyo", "osaka", "kyoto", "hokkaido", "okinawa", "nara"),
        ("日本", "东京", "大阪", "京都", "北海道", "冲绳", "奈良"),
    ),
    "korea": (
        ("korea", "seoul", "busan", "jeju"),
        ("韩国", "首尔", "釜山", "济州"),
    ),
    "southeast_asia": (
        ("thailand", "bangkok", "phuket", "chiang mai", "singapore", "malaysia",
         "kuala lumpur", "vietnam", "hanoi", "ho chi minh", "bali", "indonesia",
         "philippines", "cambodia"),
        ("泰国", "曼谷", "普吉", "清迈", "新加坡", "马来西亚", "吉隆坡", "越南",
         "河内", "胡志明", "巴厘岛", "印尼", "印度尼西亚", "菲律宾", "柬埔寨"),
    ),
    "europe": (
        ("france", "paris", "united kingdom", "england", "london", "italy", "rome",
         "milan", "venice", "florence", "germany", "berlin", "munich", "spain",
         "barcelona", "madrid", "switzerland", "zurich", "netherlands", "amsterdam"),
        ("法国", "巴黎", "英国", "伦敦", "意大利", "罗马", "米兰", "威尼斯", "佛罗伦萨",
         "德国", "柏林", "慕尼黑", "西班牙", "巴塞罗那", "马德里", "瑞士", "苏黎世",
         "荷兰", "阿姆斯特丹"),
    ),
    "americas": (
        ("united states", "usa", "new york", "los angeles", "san francisco",
         "canada", "vancouver", "toronto", "mexico"),
        ("美国", "纽约", "洛杉矶", "旧金山", "加拿大", "温哥华", "多伦多", "墨西哥"),
    ),
    "oceania": (
        ("australia", "sydney", "melbourne", "new zealand", "auckland"),
        ("澳大利亚", "澳洲", "悉尼", "墨尔本", "新西兰", "奥克兰"),
    ),
    "middle_east_africa": (
        ("dubai", "turkey", "istanbul", "egypt", "cairo", "morocco"),
        ("迪拜", "土耳其", "伊斯坦布尔", "埃及", "开罗", "摩洛哥"),
    ),
}


def normalize_destination(destination: str | None) -> str:
    return (destination or "").strip().lower()


def matches_foreign_group(normalized: str) -> str | None:
    """Name of the first foreign keyword group found in the text."""
    for group, (latin, han) in FOREIGN_KEYWORD_GROUPS.items():
        if any(keyword in normalized for keyword in latin):
            return group
        if any(keyword in normalized for keyword in han):
            return group
    return None


def classify_by_keywords(destination: str | None) -> bool:
    """Keyword heuristic; unrecognized destinations count as domestic."""
    normalized = normalize_destination(destination)
    if not normalized:
        return False
    if any(keyword in normalized for keyword in DOMESTIC_KEYWORDS):
        return False
    return matches_foreign_group(normalized) is not None


class InternationalityClassifier:
    """Memoizing classifier with an optional oracle override."""

    def __init__(self, oracle: InternationalityOracle | None = None) -> None:
        self._oracle = oracle
        self._memo: dict[str, bool] = {}

    async def classify(self, destination: str | None) -> bool:
        normalized = normalize_destination(destination)
        if not normalized:
            return False
        if normalized in self._memo:
            return self._memo[normalized]

        result = classify_by_keywords(normalized)

        if self._oracle is not None:
            try:
                answer = await self._oracle.classify(destination.strip())
            except Exception as e:
                logger.warning(f"Internationality oracle failed, using heuristic: {type(e).__name__}")
                answer = None
            if isinstance(answer, bool):
                result = answer

        self._memo[normalized] = result
        return result
