"""
Keyword sets driving the heuristic extraction tier, importance scoring
and query tokenization.

All matching is substring-based against lower-cased text unless noted.
"""

# A first-person sentence containing one of these becomes a LONG_TERM_FACT.
STABLE_FACT_HINTS: frozenset[str] = frozenset({
    "prefer", "usually", "always", "never", "schedule", "work", "morning",
    "evening", "weekend", "commute", "shift", "cannot", "can't", "allergic",
    "injury", "adhd", "sleep", "routine", "at home", "at office",
})

# Otherwise, one of these makes it a USER_INSIGHT.
INSIGHT_HINTS: frozenset[str] = frozenset({
    "struggle", "difficult", "hard to", "overwhelmed", "distract",
    "procrastinat", "forget", "motivation", "trigger", "tempt", "stuck",
})

# Sentences with these and no stable-fact hint are discarded.
SHORT_TERM_MARKERS: frozenset[str] = frozenset({
    "today", "yesterday", "tomorrow", "right now", "this afternoon", "this evening",
})

# Matched against the sentence padded with spaces, so these are whole words.
FIRST_PERSON_MARKERS: frozenset[str] = frozenset({
    " i ", " i'm ", " i am ", " my ", " me ", " myself ",
})

# Importance +1
DURABILITY_KEYWORDS: frozenset[str] = frozenset({
    "prefer", "usually", "always", "can't", "cannot", "schedule", "work",
    "morning", "evening",
})

# Importance -1
VOLATILITY_KEYWORDS: frozenset[str] = frozenset({
    "today", "yesterday", "this week", "sometimes", "maybe",
})

# Exact-token match, dropped from retrieval queries.
QUERY_STOPWORDS: frozenset[str] = frozenset({
    "the", "and", "for", "with", "that", "this", "have", "just",
    "what", "when", "your", "about", "from", "want", "need", "today",
    "you", "are", "was", "were", "can", "could", "should", "would",
})


def contains_any(text: str, keywords: frozenset[str]) -> bool:
    return any(keyword in text for keyword in keywords)
