"""
ContractService — picks the answer contract or contract chain for a request.

Selection is deterministic wherever a rule exists. The LLM selector is the
last resort for intents without a deterministic default, is constrained to
the intent's allowed contracts, and degrades to GENERAL_RESPONSE.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from assistant_core.control_plane import contracts as cp
from assistant_core.parser.llm_json import parse_llm_model
from assistant_core.prompts import CONTRACT_SELECTION_PROMPT
from domain.models import (
    AnswerContract,
    ChainBuildScope,
    ChatMessage,
    ContextLayers,
    ContractChain,
    ContractSelection,
    Intent,
    LLMRequest,
    PromptUsageRecord,
)
from ports.llm_provider import LLMProviderPort
from shared_utils.constants import LogScope, ModelAssignments, PromptIds
from shared_utils.logging_utils import ContextualLogger


logger = ContextualLogger(scope=LogScope.CONTROL_PLANE)


class _RawContractChoice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    contract: Optional[str] = None
    reason: Optional[str] = None


class ContractService:
    """Contract and chain selection for an already classified request."""

    def __init__(
        self,
        *,
        llm_provider: LLMProviderPort,
        model: str = ModelAssignments.CONTRACT_SELECTION,
    ) -> None:
        self._llm = llm_provider
        self._model = model

    # ------------------------------------------------------------------
    # Single contract
    # ------------------------------------------------------------------

    async def select_answer_contract(
        self,
        question: str,
        intent: Intent,
        layers: ContextLayers,
        proposed_contracts: Optional[Sequence[AnswerContract]] = None,
        usage: Optional[PromptUsageRecord] = None,
    ) -> ContractSelection:
        """Select one contract for *question* under *intent*.

        Order: refuse patterns, confirmed proposals, keyword table,
        deterministic default, constrained LLM selection.
        """
        if cp.should_refuse(question):
            return self._selection(AnswerContract.REFUSE, "keyword", intent)

        proposed = self._allowed_proposals(intent, proposed_contracts)
        if proposed:
            return self._selection(proposed[0], "llm_proposed", intent)

        deterministic = cp.select_contract_by_keyword(question, intent)
        if deterministic is not None:
            contract, method = deterministic
            return self._selection(contract, method, intent)

        contract = await self._select_by_llm(question, intent, layers, usage)
        if contract is None:
            return self._selection(AnswerContract.GENERAL_RESPONSE, "default", intent)
        return self._selection(contract, "llm", intent)

    def _selection(self, contract: AnswerContract, method: str, intent: Intent) -> ContractSelection:
        logger.info(
            "contract_selected",
            intent=intent.value,
            contract=contract.value,
            method=method,
        )
        return ContractSelection(
            contract=contract,
            method=method,
            constraints=cp.get_contract_constraints(contract),
        )

    @staticmethod
    def _allowed_proposals(
        intent: Intent, proposed: Optional[Sequence[AnswerContract]]
    ) -> List[AnswerContract]:
        if not proposed:
            return []
        return [c for c in proposed if cp.is_allowed_for_intent(c, intent)]

    async def _select_by_llm(
        self,
        question: str,
        intent: Intent,
        layers: ContextLayers,
        usage: Optional[PromptUsageRecord],
    ) -> Optional[AnswerContract]:
        allowed = cp.ALLOWED_CONTRACTS.get(intent, ())
        if not allowed:
            return None

        if usage is not None:
            usage.record(PromptIds.CONTRACT_SELECTION_PROMPT)

        system = CONTRACT_SELECTION_PROMPT.format(
            intent=intent.value,
            allowed="\n".join(f"- {c.value}" for c in allowed),
        )
        try:
            response = await self._llm.generate_text(
                LLMRequest(
                    model=self._model,
                    messages=[
                        ChatMessage(role="system", content=system),
                        ChatMessage(role="user", content=question),
                    ],
                    temperature=0.0,
                )
            )
            choice = parse_llm_model(response.text, _RawContractChoice, "contract_selection")
        except Exception as e:
            logger.warning("contract_llm_selection_failed", intent=intent.value, error=str(e))
            return None

        try:
            contract = AnswerContract((choice.contract or "").upper())
        except ValueError:
            logger.warning("contract_llm_selection_invalid", intent=intent.value, raw=choice.contract)
            return None

        if contract not in allowed:
            logger.warning(
                "contract_llm_selection_not_allowed",
                intent=intent.value,
                contract=contract.value,
                product_ssot=layers.product_ssot,
            )
            return None
        return contract

    # ------------------------------------------------------------------
    # Chains
    # ------------------------------------------------------------------

    async def select_contract_chain(
        self,
        question: str,
        intent: Intent,
        layers: ContextLayers,
        scope: Optional[ChainBuildScope] = None,
        proposed_contracts: Optional[Sequence[AnswerContract]] = None,
        usage: Optional[PromptUsageRecord] = None,
    ) -> ContractChain:
        """Plan the contract chain executed for this request.

        Every chain is validated; a chain that breaks the authority rule or is
        too long comes back as a CLARIFY chain carrying the reason.
        """
        scope = scope or ChainBuildScope()

        if cp.should_refuse(question):
            return cp.make_contract_chain([AnswerContract.REFUSE], "keyword")

        proposed = self._allowed_proposals(intent, proposed_contracts)
        if proposed:
            chain = cp.chain_or_clarify(proposed, "llm_proposed")
        elif intent == Intent.SINGLE_MEETING:
            chain = cp.select_single_meeting_contract_chain(question)
            if chain is None:
                selection = await self.select_answer_contract(question, intent, layers, usage=usage)
                chain = cp.make_contract_chain([selection.contract], selection.method)
        elif intent == Intent.MULTI_MEETING:
            chain = cp.select_multi_meeting_contract_chain(question)
        elif intent == Intent.EXTERNAL_RESEARCH:
            chain = cp.build_contract_chain(question, intent, scope)
        else:
            selection = await self.select_answer_contract(question, intent, layers, usage=usage)
            chain = cp.make_contract_chain([selection.contract], selection.method)

        logger.info(
            "contract_chain_selected",
            intent=intent.value,
            contracts=[c.value for c in chain.contracts],
            selection_method=chain.selection_method,
            clarify_reason=chain.clarify_reason,
        )
        return chain
