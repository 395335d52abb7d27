"""Relevance scorer prompt."""

RELEVANCE_SYSTEM_PROMPT = (
    "You rate search results for a catalogue of professional cleaning equipment. "
    "Answer with JSON only."
)

RELEVANCE_PROMPT = """Rate how well the CANDIDATE listing answers the buyer's QUERY on a scale of 0.0 to 1.0:

- 1.0: Same kind of equipment, matching specs (model, capacity, voltage)
- 0.7-0.9: Same kind of equipment, specs differ or are missing
- 0.4-0.6: Related item (accessory or consumable for the requested machine)
- 0.1-0.3: Same general category, different purpose
- 0.0: Unrelated

QUERY:
{query}

CANDIDATE:
{candidate}

Respond in JSON:
{{"relevance": 0.0-1.0, "reason": "brief explanation"}}"""
