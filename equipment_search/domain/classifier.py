"""
Rule-based domain classifier for cleaning equipment.

Categories:
- core: main cleaning machines (lavadoras, aspiradores, extratoras...)
- support: items used in cleaning workflows (mops, baldes, discos, pads)
- peripheral: non-cleaning items (electronics, ladders, standalone motors)
- unknown: nothing matched

Support keywords are checked before core keywords: "disco para enceradeira"
is an accessory even though it names a machine.
"""

import re

from equipment_search.corpus.models import CorpusDocument
from equipment_search.domain.models import DomainCategory, DomainClassification
from equipment_search.text.normalization import strip_accents

CORE_KEYWORDS = (
    # Floor scrubbers
    "lavadora de piso",
    "lavadora piso",
    "auto lavadora",
    "autolavadora",
    "auto-lavadora",
    "scrubber",
    "auto-scrubber",
    "autoscrubber",
    "lavadora de pisos",
    "maquina lavar piso",
    # Vacuum cleaners
    "aspirador",
    "aspiradora",
    "aspiradores",
    "aspira po",
    "aspira agua",
    "aspirador agua e po",
    "aspirador industrial",
    "aspirador de po",
    "vacuum",
    # Extractors
    "extratora",
    "extrator",
    "extratoras",
    "carpet extractor",
    "extratora de carpete",
    # High-pressure washers
    "hidrojato",
    "hidrojateadora",
    "hidro jato",
    "lavadora alta pressao",
    "lavadora de alta pressao",
    "lavadora pressao",
    "pressure washer",
    # Polishers
    "enceradeira",
    "enceradeiras",
    "politriz",
    "polisher",
    "single disc",
    "single-disc",
    "monodisco",
    "mono disco",
    "disco unico",
    # Sweepers
    "varredeira",
    "varredeiras",
    "vassoura mecanica",
    "sweeper",
)

SUPPORT_KEYWORDS = (
    # Mops
    "mop",
    "refil mop",
    "cabo mop",
    "mop plano",
    "mop po",
    "esfregao",
    "esfregona",
    # Buckets
    "balde",
    "baldes",
    "balde espremedor",
    "espremedor",
    "balde duplo",
    "bucket",
    # Carts
    "carrinho funcional",
    "carrinho limpeza",
    "carrinho de limpeza",
    "carro funcional",
    "trolley",
    "cart",
    # Pads and discs for floor machines
    "disco para",
    "pad para",
    "disco enceradeira",
    "pad enceradeira",
    "disco limpeza",
    "fibra abrasiva",
    "lixa para piso",
    "disco de",
    "pad de",
    # Squeegees, brooms, small tools
    "vassoura",
    "rodo",
    "rodinho",
    "pa de lixo",
    "pa coletora",
    "pano",
    "flanela",
    "squeegee",
    "broom",
    # Wringers and accessories
    "espremedor de mop",
    "prensa",
    "suporte",
    "placa",
)

PERIPHERAL_KEYWORDS = (
    # Electronics
    "celular",
    "smartphone",
    "telefone",
    "iphone",
    "android",
    # Computers
    "notebook",
    "laptop",
    "computador",
    "desktop",
    "pc",
    "tablet",
    # Office equipment
    "relogio de ponto",
    "radio",
    "walkie talkie",
    "walkie-talkie",
    # Generic tools
    "escada",
    "ladder",
)

# Checked only when "motor" appears and nothing else matched
STANDALONE_MOTOR_PATTERNS = (
    re.compile(r"motor\s+\d+([.,]\d+)?\s*hp"),
    re.compile(r"motor\s+\d+([.,]\d+)?\s*cv"),
    re.compile(r"motor\s+trifasico"),
    re.compile(r"motor\s+monofasico"),
    re.compile(r"motor\s+eletrico"),
    re.compile(r"motor\s+weg"),
    re.compile(r"^\s*motor\s+"),
)

CATEGORY_CONFIDENCE = {
    DomainCategory.SUPPORT: 0.90,
    DomainCategory.CORE: 0.95,
    DomainCategory.PERIPHERAL: 0.90,
    DomainCategory.UNKNOWN: 0.3,
}
STANDALONE_MOTOR_CONFIDENCE = 0.85
EMPTY_TEXT_CONFIDENCE = 0.1

_C = DomainCategory
# BASE_COMPATIBILITY[query_category][doc_category]
BASE_COMPATIBILITY: dict[DomainCategory, dict[DomainCategory, float]] = {
    _C.CORE: {_C.CORE: 1.0, _C.SUPPORT: 0.85, _C.UNKNOWN: 0.6, _C.PERIPHERAL: 0.2},
    _C.SUPPORT: {_C.SUPPORT: 1.0, _C.CORE: 0.8, _C.UNKNOWN: 0.6, _C.PERIPHERAL: 0.3},
    _C.PERIPHERAL: {_C.PERIPHERAL: 1.0, _C.UNKNOWN: 0.7, _C.SUPPORT: 0.4, _C.CORE: 0.3},
    _C.UNKNOWN: {_C.CORE: 0.8, _C.SUPPORT: 0.75, _C.UNKNOWN: 0.6, _C.PERIPHERAL: 0.4},
}

_NON_ALNUM = re.compile(r"[^a-z0-9\s-]")


def _prepare(text: str) -> str:
    t = strip_accents(text.lower())
    t = _NON_ALNUM.sub(" ", t)
    return " ".join(t.split())


class DomainClassifier:
    """Keyword classifier. Stateless, safe to share between concurrent requests."""

    def classify(self, text: str) -> DomainClassification:
        if not text or not text.strip():
            return DomainClassification(
                category=DomainCategory.UNKNOWN, confidence=EMPTY_TEXT_CONFIDENCE
            )

        normalized = _prepare(text)

        for category, keywords in (
            (DomainCategory.SUPPORT, SUPPORT_KEYWORDS),
            (DomainCategory.CORE, CORE_KEYWORDS),
            (DomainCategory.PERIPHERAL, PERIPHERAL_KEYWORDS),
        ):
            if any(keyword in normalized for keyword in keywords):
                return DomainClassification(
                    category=category, confidence=CATEGORY_CONFIDENCE[category]
                )

        if "motor" in normalized and any(
            p.search(normalized) for p in STANDALONE_MOTOR_PATTERNS
        ):
            return DomainClassification(
                category=DomainCategory.PERIPHERAL,
                confidence=STANDALONE_MOTOR_CONFIDENCE,
            )

        return DomainClassification(
            category=DomainCategory.UNKNOWN,
            confidence=CATEGORY_CONFIDENCE[DomainCategory.UNKNOWN],
        )

    def classify_document(self, doc: CorpusDocument) -> DomainClassification:
        """Explicit labels from the corpus win over keyword rules."""
        if doc.domain_label is not None:
            return DomainClassification(
                category=doc.domain_label,
                confidence=CATEGORY_CONFIDENCE[doc.domain_label],
            )
        return self.classify(doc.text or doc.raw_text)


def domain_score(
    query_domain: DomainClassification, doc_domain: DomainClassification
) -> float:
    """
    Compatibility between a query and a document classification, in [0, 1].

    final = base * (0.5 + 0.5 * query_confidence * doc_confidence)
    """
    base = BASE_COMPATIBILITY[query_domain.category][doc_domain.category]
    score = base * (0.5 + 0.5 * query_domain.confidence * doc_domain.confidence)
    return max(0.0, min(1.0, score))
