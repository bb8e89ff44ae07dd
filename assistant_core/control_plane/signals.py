"""
Deterministic intent signals.

Keyword lists are matched as lowercase substrings, patterns as
case-insensitive regexes. These tables are the cheap, high-precision
fast path; anything they cannot place goes to the LLM interpretation step.
"""

import re
from typing import Iterable, List, Optional, Pattern, Sequence

from domain.models import Intent


# ---------------------------------------------------------------------------
# Keyword tables
# ---------------------------------------------------------------------------

SINGLE_MEETING_KEYWORDS = [
    "yesterday",
    "today",
    "last meeting",
    "this meeting",
    "the meeting",
    "the call",
    "last call",
    "this call",
    "from the meeting",
    "in the meeting",
    "discussed in",
    "action items",
    "next steps",
    "commitments",
    "attendees",
    "who was on",
    "who attended",
    "customer questions",
    "what did they ask",
    "what questions",
    "meeting with",
    "call with",
    "demo with",
    "on monday",
    "on tuesday",
    "on wednesday",
    "on thursday",
    "on friday",
    "last week",
    "this week",
    "summarize the meeting",
    "summary of the meeting",
    "meeting summary",
    "walkthrough",
]

MULTI_MEETING_KEYWORDS = [
    "across meetings",
    "across all meetings",
    "all meetings",
    "all calls",
    "all recent calls",
    "recent calls",
    "all recent meetings",
    "recent meetings",
    "trend",
    "over time",
    "historically",
    "patterns",
    "how many times",
    "common questions",
    "recurring",
    "aggregate",
    "summary of all",
    "compare meetings",
    "find all",
    "search for",
    "search all",
    "search across",
    "which meetings",
    "which calls",
    "every meeting",
    "every call",
    "any meetings",
    "any calls",
    "meetings that mention",
    "calls that mention",
    "who asked about",
    "everyone who",
]

PRODUCT_KNOWLEDGE_KEYWORDS = [
    # FAQ and copy
    "frequently asked questions",
    "faq",
    "faqs",
    "update the faq",
    "update our faq",
    "update copy",
    "updating copy",
    "website copy",
    "value props",
    "value propositions",
    # Direct product questions
    "what is pitcrew",
    "what does pitcrew do",
    "what's pitcrew",
    "pitcrew features",
    "product features",
    "capabilities",
    "what can pitcrew",
    "does pitcrew support",
    "does pitcrew integrate",
    "does pitcrew connect",
    "does pitcrew work with",
    "can pitcrew",
    # Pricing
    "pitcrew pricing",
    "pitcrew priced",
    "pitcrew cost",
    "how is pitcrew priced",
    "how much is pitcrew",
    "how much does pitcrew",
    "price of pitcrew",
    "pricing for pitcrew",
    # Tiers
    "pro tier",
    "advanced tier",
    "enterprise tier",
    # Value and features
    "value proposition",
    "how does pitcrew",
    "pitcrew integrations",
    "pitcrew work",
    "pitcrew help",
    "about pitcrew",
    "pitcrew's",
    "tell me about pitcrew",
    "explain pitcrew",
    # Feature names
    "live tv dashboard",
    "bladeassure",
    "queue analytics",
    "tire tracking",
    "bay tracking",
    "vehicle tracking",
    "camera integration",
    "vision ai",
    # Content creation
    "update our pricing",
    "pricing faq",
    "safety features",
    "deployment options",
    # Integrations
    "pos system",
    "pos integration",
    "integrate with pos",
    "dms integration",
    "dealer management",
]

DOCUMENT_SEARCH_KEYWORDS = [
    "in the documents",
    "documentation",
    "spec",
    "specification",
    "wiki",
    "knowledge base",
    "reference doc",
    "find the contract",
    "contract we signed",
    "proposal",
    "agreement",
]

EXTERNAL_RESEARCH_KEYWORDS = [
    # Company research
    "do research on",
    "research on",
    "research that customer",
    "recent earnings",
    "earnings call",
    "public statements",
    "their priorities",
    "their strategic",
    "competitor research",
    "company research",
    "find out their",
    "find out about",
    "look up",
    # Decks
    "slide deck for",
    "sales deck for",
    "pitch deck for",
    "presentation for",
    # Topic research
    "do research to understand",
    "research to understand",
    "understand more about",
    "learn more about",
    "industry trends",
    "industry practices",
    "industry standards",
    "best practices for",
    "market research",
    "how do they",
    "why do they",
    "what is the purpose of",
    "what are the benefits of",
]

GENERAL_HELP_KEYWORDS = [
    "what can you do",
    "commands",
    "usage",
    "hello",
    "hi there",
    "hey there",
    "thanks",
    "thank you",
    "good morning",
    "good afternoon",
    "draft an email",
    "draft email",
    "write an email",
    "write email",
    "draft a message",
    "draft message",
    "help me write",
    "help me draft",
]


# ---------------------------------------------------------------------------
# Regex tables
# ---------------------------------------------------------------------------

def _compile(patterns: Iterable[str]) -> List[Pattern[str]]:
    return [re.compile(p, re.IGNORECASE) for p in patterns]


# "What did X say" only counts when X is a pronoun or generic party. Named
# companies fall through to entity detection.
_GENERIC_SUBJECT = r"(?:they|he|she|we|you|the\s+customer|the\s+client|the\s+prospect|the\s+team)"

SINGLE_MEETING_PATTERNS = _compile([
    rf"\bwhat\s+did\s+{_GENERIC_SUBJECT}\s+(?:say|mention|ask|suggest|agree)\b",
    r"\bwhat\s+concerns?\s+did\b",
    r"\bwhat\s+feedback\s+did\b",
    r"\bwhat\s+questions?\s+did\b",
    r"\bdid\s+they\s+(say|mention|ask|suggest|agree)\b",
    r"\bin\s+the\s+[\w\s]+\s+(meeting|call|demo)\b",
    r"\bfrom\s+the\s+[\w\s]+\s+(meeting|call|demo)\b",
    r"\bthe\s+[\w\s]+\s+(meeting|call|demo)\s+with\b",
    r"\bsummarize\s+(the|this|our|my)\s+(meeting|call|demo)\b",
    r"\bwhat\s+were\s+the\s+(next\s+steps|action\s+items|takeaways)\b",
    r"\bwho\s+was\s+(on|in|at)\s+(the|this)\s+(call|meeting)\b",
    r"\bhelp\s+me\s+answer\s+(the|their)\s+questions?\b",
    r"\banswer\s+(the|their)\s+questions?\s+from\b",
])

MULTI_MEETING_PATTERNS = _compile([
    r"\bacross\s+(all\s+)?meetings\b",
    r"\bfind\s+all\s+(the\s+)?(questions?|mentions?|times?|meetings?|calls?)\b",
    r"\bwhich\s+meetings?\s+(mention|discuss|have|include)\b",
    r"\beveryone\s+who\s+(asked|mentioned|said)\b",
    r"\bwhat\s+meetings?\s+(mention|discuss|have|include)\b",
    r"\bcompare\s+what\s+[\w\s]+\s+said\b",
    r"\bcompare\s+[\w\s]+\s+and\s+[\w\s]+\s+meetings?\b",
    r"\bsearch\s+all\s+(recent\s+)?(calls?|meetings?)\b",
    r"\b(all|recent)\s+(calls?|meetings?)\b.*\b(mention|about|discuss)\b",
])

PRODUCT_KNOWLEDGE_PATTERNS = _compile([
    r"\bhow\s+does\s+pitcrew\s+work\b",
    r"\bwhat\s+is\s+pitcrew('s)?\b",
    r"\bdoes\s+(it|pitcrew)\s+(support|integrate|work\s+with|connect)\b",
    r"\bcan\s+pitcrew\s+(do|handle|support|integrate)\b",
    r"\bpitcrew('s)?\s+(pricing|cost|features?|capabilities?)\b",
    r"\b(pro|advanced|enterprise)\s+tier\b",
    r"\bupdat(e|ing)\s+(our|the|my)\s+(pricing|faq|copy|website)\b",
    r"\bwrite\s+(a\s+section|copy)\s+about\s+pitcrew\b",
    r"\b(help\s+me\s+)?write\s+about\s+(pitcrew|our\s+product)\b",
])

EXTERNAL_RESEARCH_PATTERNS = _compile([
    r"\bdo\s+research\s+on\s+(that\s+)?(customer|company|prospect)\b",
    r"\bresearch\s+(on\s+)?[\w\s]+\s+(to\s+find|including|and)\b",
    r"\b(recent\s+)?earnings\s+(calls?|reports?)\b",
    r"\bpublic\s+statements?\b",
    r"\b(their|company'?s?)\s+(priorities|strategy|strategic)\b",
    r"\bcreating\s+a\s+(slide|sales|pitch)\s+deck\s+for\b",
    r"\bslide\s+deck\s+for\s+[\w\s]+\s+to\s+sell\b",
    r"\bselling?\s+(to|their)\s+(leadership|team|executive)\b",
    r"\bresearch\s+(the\s+)?(company|website|site|business)\b",
    r"\b(competitor|competitive)\s+(analysis|research|comparison)\b",
    r"\banalyze\s+(their|the)\s+(company|business|offerings?)\b",
    r"\b(their|the\s+company'?s?)\s+(website|site|business|offerings?)\b",
    r"\bdo\s+research\s+to\s+understand\b",
    r"\bresearch\s+to\s+understand\s+more\b",
    r"\bunderstand\s+more\s+about\s+[\w\s]+\s+(and|why|how)\b",
    r"\bhow\s+(do|does|are)\s+[\w\s]+\s+(shops?|stores?|businesses?)\s+(use|handle|manage)\b",
    r"\bwhat\s+(is|are)\s+(the\s+)?(purpose|benefit|reason)\s+of\b",
    r"\bindustry\s+(practices?|standards?|trends?|norms?)\b",
    r"\b(best|common)\s+practices?\s+(for|in|at)\b",
    r"\bresearch[\w\s]+then\s+write\b",
    r"\bdo\s+research[\w\s]+write\s+(a|the)\s+(description|feature)\b",
])

REFUSE_PATTERNS = _compile([
    r"\bweather\s+(in|like|forecast)\b",
    r"\bstock\s+(price|market|ticker)\b",
    r"\bhome\s+address\b",
    r"\bpersonal\s+(address|phone|email)\b",
    r"\bhow\s+much\s+(revenue|money|profit)\s+will\b",
    r"\bwhat('s|\s+is)\s+the\s+time\b",
    r"\b(tell\s+me\s+a\s+)?joke\b",
    r"\bwrite\s+(me\s+)?a?\s*(poem|story|song)\b",
])

MULTI_INTENT_PATTERNS = _compile([
    r"\b(summarize|summary)\b.*\b(and|then)\b.*\b(pricing|check|email|compare)\b",
    r"\b(answer|respond)\b.*\b(and|then)\b.*\b(email|summarize|pricing)\b",
    r"\bcompare\b.*\b(and|then)\b.*\b(email|summarize)\b",
])

SPLIT_OPTIONS = ["meeting content", "other request"]

AGGREGATE_QUANTIFIER = re.compile(r"\b(all|every|across|find|which|any)\b", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Known entities
# ---------------------------------------------------------------------------

# Served when the company directory has never loaded successfully.
FALLBACK_COMPANIES = [
    "les schwab",
    "ace hardware",
    "jiffy lube",
    "discount tire",
    "valvoline",
    "walmart",
    "fullspeed",
    "canadian tire",
]

KNOWN_CONTACTS = [
    "tyler wiggins",
    "tyler",
    "randy hentschke",
    "randy",
    "robert colongo",
    "robert",
    "will sovern",
    "eric conn",
    "john smith",
]


# ---------------------------------------------------------------------------
# Category specs (order is the order signals are reported in)
# ---------------------------------------------------------------------------

CATEGORY_SIGNALS = [
    (Intent.MULTI_MEETING, MULTI_MEETING_PATTERNS, MULTI_MEETING_KEYWORDS, "multi_meeting"),
    (Intent.SINGLE_MEETING, SINGLE_MEETING_PATTERNS, SINGLE_MEETING_KEYWORDS, "single_meeting"),
    (Intent.PRODUCT_KNOWLEDGE, PRODUCT_KNOWLEDGE_PATTERNS, PRODUCT_KNOWLEDGE_KEYWORDS, "product"),
    (Intent.EXTERNAL_RESEARCH, EXTERNAL_RESEARCH_PATTERNS, EXTERNAL_RESEARCH_KEYWORDS, "external_research"),
]


def matches_keywords(text: str, keywords: Sequence[str]) -> bool:
    lower = text.lower()
    return any(kw in lower for kw in keywords)


def matches_patterns(text: str, patterns: Sequence[Pattern[str]]) -> bool:
    return any(p.search(text) for p in patterns)


def find_known_company(text: str, companies: Sequence[str]) -> Optional[str]:
    """Return the first company name contained in *text* (case-insensitive)."""
    lower = text.lower()
    for company in companies:
        name = company.strip().lower()
        if name and name in lower:
            return name
    return None


def find_known_contact(text: str) -> Optional[str]:
    lower = text.lower()
    for contact in KNOWN_CONTACTS:
        if re.search(rf"\b{re.escape(contact)}\b", lower):
            return contact
    return None
