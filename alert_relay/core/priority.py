"""
Keyword-based priority classification for ingested alerts.

Priority is computed once at ingestion time and never recomputed.
"""

from typing import Tuple
from .models import Priority

# 치명 등급: 항상 먼저 검사한다
CRITICAL_KEYWORDS: Tuple[str, ...] = (
    "épidémie", "épidémique", "mortel", "décès", "mort", "hospitalisation",
    "empoisonnement", "intoxication",
    "epidemic", "outbreak", "deadly", "death", "fatal",
    "hospitalization", "hospitalised", "hospitalized", "poisoning",
)

HIGH_KEYWORDS: Tuple[str, ...] = (
    "urgent", "dangereux", "danger", "toxique", "maladie", "infection",
    "contamination", "insalubre", "insalubrité", "rats", "rongeurs", "nuisible",
    "dangerous", "toxic", "toxicity", "disease", "contaminated",
    "infestation", "infested", "unsanitary", "rodents", "pests",
)

def classify_priority(description: str) -> Priority:
    """
    설명 텍스트로 우선순위를 결정합니다.

    소문자로 바꾼 설명에서 치명 등급 키워드를 먼저, 그 다음 높음 등급
    키워드를 찾습니다. 처음 일치한 등급이 결과이며 일치가 없으면 medium.

    Args:
        description: 경보 설명

    Returns:
        "critical" | "high" | "medium"
    """
    text = (description or "").lower()

    for keyword in CRITICAL_KEYWORDS:
        if keyword in text:
            return "critical"

    for keyword in HIGH_KEYWORDS:
        if keyword in text:
            return "high"

    return "medium"
