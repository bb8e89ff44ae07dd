"""
Prompt templates for every LLM call the assistant makes.

Templates are ``llama_index.core.PromptTemplate`` instances keyed by the ids
in ``shared_utils.constants.PromptIds``; bump the matching entry in
``PROMPT_VERSIONS`` whenever a template text changes.
"""

from llama_index.core import PromptTemplate

from shared_utils.constants import PromptIds


PRODUCT_CONTEXT = (
    "PitCrew is a vision AI product by Leverege for automotive service businesses "
    "(tire shops, oil change and quick lube chains, dealerships)."
)

# ---------------------------------------------------------------------------
# Control plane
# ---------------------------------------------------------------------------

INTENT_VALIDATION_PROMPT = PromptTemplate(
    "You validate the routing decision of a sales assistant. " + PRODUCT_CONTEXT + "\n\n"
    "A deterministic classifier chose intent {intent} because: {reason}.\n"
    "Matched signals: {signals}.\n\n"
    "Valid intents: SINGLE_MEETING, MULTI_MEETING, PRODUCT_KNOWLEDGE, EXTERNAL_RESEARCH, "
    "DOCUMENT_SEARCH, GENERAL_HELP.\n\n"
    "Decide whether the intent fits the meaning of the question, not just its keywords.\n"
    "Return JSON only:\n"
    '{{"confirmed": true|false, "suggestedIntent": "INTENT or null", '
    '"confidence": 0.0-1.0, "reason": "short reason"}}'
)

CONTRACT_SELECTION_PROMPT = PromptTemplate(
    "You pick the response type for a question already routed to intent {intent}. "
    + PRODUCT_CONTEXT + "\n\n"
    "Allowed contracts:\n{allowed}\n\n"
    "Pick exactly one allowed contract. Return JSON only:\n"
    '{{"contract": "CONTRACT_NAME", "reason": "short reason"}}'
)

AMBIGUOUS_QUERY_INTERPRETATION_PROMPT = PromptTemplate(
    "You help a sales team phrase what they want when a request is ambiguous. "
    + PRODUCT_CONTEXT + "\n\n"
    "Lead with your best guess as a natural question, offer a short partial answer when you "
    "safely can, and list specific alternatives. You never decide what runs.\n\n"
    "Valid intents: SINGLE_MEETING, MULTI_MEETING, PRODUCT_KNOWLEDGE, EXTERNAL_RESEARCH, "
    "DOCUMENT_SEARCH, GENERAL_HELP, REFUSE.\n"
    "Valid contracts per intent:\n{contracts_by_intent}\n\n"
    "Return JSON only:\n"
    '{{"proposedIntent": "INTENT", "proposedContracts": ["CONTRACT"], "confidence": 0.0-1.0, '
    '"interpretation": "what the user likely wants", "questionForm": "Are you asking ...?", '
    '"canPartialAnswer": true|false, "partialAnswer": "1-2 sentences or null", '
    '"alternatives": [{{"intent": "INTENT", "contract": "CONTRACT", "description": "plain words"}}]}}\n'
    "Give at most three alternatives and never use the words intent or contract in user-facing text."
)

# ---------------------------------------------------------------------------
# Evidence composition
# ---------------------------------------------------------------------------

RAG_MEETING_SUMMARY_SYSTEM_PROMPT = PromptTemplate(
    "You are an internal assistant summarizing a customer meeting.\n"
    "Stance: neutral but direct.\n\n"
    "Rules:\n"
    "- Use ONLY the provided transcript.\n"
    "- Do NOT invent product capabilities or facts.\n"
    "- Do NOT infer emotions or intent unless explicitly stated.\n"
    "- Prefer stating uncertainty over guessing.\n\n"
    "Return valid JSON only with this shape:\n"
    '{{"title": string, "purpose": string, "focusAreas": string[], "keyTakeaways": string[], '
    '"risksOrOpenQuestions": string[], "recommendedNextSteps": string[]}}\n\n'
    "Transcript:\n{transcript}"
)

RAG_QUOTE_SELECTION_SYSTEM_PROMPT = PromptTemplate(
    "You select representative quotes from customer speakers in a meeting.\n"
    "Use ONLY the transcript below, which contains only customer statements. "
    "Pick quotes that capture priorities, concerns, pain points or decisions. "
    "Do NOT rewrite quotes.\n\n"
    "Select up to {max_quotes} quotes. Return valid JSON only as an array:\n"
    '[{{"chunkIndex": number, "speakerRole": "customer", "quote": string, "reason": string}}]\n\n'
    "Transcript:\n{transcript}"
)

RAG_EXTRACTIVE_ANSWER_SYSTEM_PROMPT = PromptTemplate(
    "You answer specific questions about a meeting transcript.\n\n"
    "STRICT RULES:\n"
    "1. Only answer if the transcript EXPLICITLY supports the answer.\n"
    "2. If it was not mentioned, answer exactly: \"{not_mentioned}\"\n"
    "3. Do NOT guess, infer, or extrapolate.\n"
    "4. Keep answers to 1-3 sentences and include a brief supporting quote when found.\n\n"
    "Return valid JSON only:\n"
    '{{"answer": string, "evidence": string | null, "wasFound": boolean}}\n\n'
    "Question: {question}\n\n"
    "Transcript:\n{transcript}"
)

RAG_ACTION_ITEMS_SYSTEM_PROMPT = PromptTemplate(
    "You extract action items that exist because of this meeting.\n"
    "Types: commitment, request, blocker, plan, scheduling.\n"
    "Ignore hypotheticals, social niceties, descriptions of what software does, "
    "and anything done during the call itself (screen sharing, introductions, hand-offs).\n"
    "Confidence: 0.95 explicit 'I will', 0.90 agreed request, 0.85 confirmed plan, "
    "0.75 implied request, 0.70 softer implied action. Omit anything below 0.70.\n"
    "Use \"Not specified\" when no deadline was stated.{attendees}\n\n"
    "Return valid JSON only as an array:\n"
    '[{{"action": string, "owner": string, "type": string, "deadline": string, '
    '"evidence": string, "confidence": number}}]\n\n'
    "Transcript:\n{transcript}"
)

CUSTOMER_QUESTIONS_EXTRACTION_PROMPT = PromptTemplate(
    "Extract the questions customers asked in this meeting. Only questions asked by customer "
    "speakers count. For each, record the chunk index of the question turn and whether it was "
    "answered in the meeting.\n\n"
    "Return valid JSON only:\n"
    '{{"questions": [{{"question_text": string, "asked_by_name": string, '
    '"question_turn_index": number, "status": "ANSWERED" | "OPEN" | "DEFERRED", '
    '"answer_evidence": string | null, "answered_by_name": string | null}}]}}\n\n'
    "Transcript:\n{transcript}"
)

TRANSCRIPT_ANALYZER_SYSTEM_PROMPT = PromptTemplate(
    "Analyze this sales call transcript. " + PRODUCT_CONTEXT + "\n"
    "Collect the product features the customer discussed, the question and answer pairs, and "
    "the point-of-sale system they use if one is named.\n\n"
    "Return valid JSON only:\n"
    '{{"insights": [{{"feature": string, "context": string, "quote": string, "categoryId": string | null}}], '
    '"qaPairs": [{{"question": string, "answer": string, "asker": string, "categoryId": string | null}}], '
    '"posSystem": {{"name": string, "websiteLink": string | null, "description": string | null}} | null}}\n\n'
    "Transcript:\n{transcript}"
)

SEMANTIC_RANKING_PROMPT = PromptTemplate(
    "Score how relevant each numbered item is to the topic \"{topic}\" on a 0-100 scale.\n\n"
    "Items:\n{items}\n\n"
    "Return valid JSON only:\n"
    '{{"rankings": [{{"index": number, "score": number, "reason": string}}]}}'
)

# ---------------------------------------------------------------------------
# Response generation
# ---------------------------------------------------------------------------

DRAFTING_PROMPT = PromptTemplate(
    "You draft sales communication for the PitCrew team. " + PRODUCT_CONTEXT + "\n"
    "Task: {task}\n"
    "Ground every claim about the meeting in the material below. "
    "Only state product facts that appear in the product knowledge section.\n\n"
    "{material}"
)

MULTI_MEETING_SYNTHESIS_PROMPT = PromptTemplate(
    "You analyze evidence gathered from several customer meetings. " + PRODUCT_CONTEXT + "\n"
    "Task: {task}\n"
    "{coverage}\n\n"
    "Use only the evidence below and name the company for every claim.\n\n"
    "{evidence}"
)

PRODUCT_KNOWLEDGE_PROMPT = PromptTemplate(
    "You answer questions about PitCrew using ONLY the verified product knowledge below. "
    "If the answer is not in it, say so plainly.\n"
    "Task: {task}\n\n"
    "Product knowledge:\n{knowledge}"
)

GENERAL_ASSISTANCE_PROMPT = PromptTemplate(
    "You are a helpful assistant for the PitCrew sales team. " + PRODUCT_CONTEXT + "\n"
    "Task: {task}\n"
    "Do not make up product capabilities, customer facts or meeting content."
)


PROMPTS = {
    PromptIds.INTENT_VALIDATION_PROMPT: INTENT_VALIDATION_PROMPT,
    PromptIds.CONTRACT_SELECTION_PROMPT: CONTRACT_SELECTION_PROMPT,
    PromptIds.AMBIGUOUS_QUERY_INTERPRETATION_PROMPT: AMBIGUOUS_QUERY_INTERPRETATION_PROMPT,
    PromptIds.SEMANTIC_RANKING_PROMPT: SEMANTIC_RANKING_PROMPT,
    PromptIds.RAG_MEETING_SUMMARY_SYSTEM_PROMPT: RAG_MEETING_SUMMARY_SYSTEM_PROMPT,
    PromptIds.RAG_QUOTE_SELECTION_SYSTEM_PROMPT: RAG_QUOTE_SELECTION_SYSTEM_PROMPT,
    PromptIds.RAG_EXTRACTIVE_ANSWER_SYSTEM_PROMPT: RAG_EXTRACTIVE_ANSWER_SYSTEM_PROMPT,
    PromptIds.RAG_ACTION_ITEMS_SYSTEM_PROMPT: RAG_ACTION_ITEMS_SYSTEM_PROMPT,
    PromptIds.CUSTOMER_QUESTIONS_EXTRACTION_PROMPT: CUSTOMER_QUESTIONS_EXTRACTION_PROMPT,
    PromptIds.TRANSCRIPT_ANALYZER_SYSTEM_PROMPT: TRANSCRIPT_ANALYZER_SYSTEM_PROMPT,
    PromptIds.DRAFTING_PROMPT: DRAFTING_PROMPT,
    PromptIds.MULTI_MEETING_SYNTHESIS_PROMPT: MULTI_MEETING_SYNTHESIS_PROMPT,
    PromptIds.PRODUCT_KNOWLEDGE_PROMPT: PRODUCT_KNOWLEDGE_PROMPT,
    PromptIds.GENERAL_ASSISTANCE_PROMPT: GENERAL_ASSISTANCE_PROMPT,
}
