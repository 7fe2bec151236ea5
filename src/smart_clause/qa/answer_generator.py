"""Template-based answer generation for contract Q&A.

Questions are routed to a topic by keyword. The topic's Jinja2 template
quotes the most relevant sentence of the document and, where the topic
defines one, a key fact extracted from it (notice period, payment
deadline, duration). Documents that say nothing on the topic get the
topic's general fallback answer.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Pattern, Sequence, Tuple

from jinja2 import DictLoader, Environment, StrictUndefined

from ..interfaces.answer import IAnswerGenerator
from ..models.conversation import Message
from ..models.enums import MessageRole


logger = logging.getLogger(__name__)


UNABLE_TO_ANSWER = (
    "I'm sorry, I was unable to answer that question about this contract. "
    "Please try rephrasing it."
)

GENERIC_ANSWER = (
    "I'd need to analyze that specific aspect of the contract more carefully. "
    "I can answer questions about termination, confidentiality, payment terms "
    "and liability. Could you specify which section or topic you're most "
    "interested in?"
)

_GENERIC_TEMPLATE = (
    "{% if quote %}The most relevant passage of {{ subject }} appears to be: "
    "\"{{ quote }}\" {% endif %}{{ generic }}"
)

_SENTENCE_SPLIT = re.compile(r"(?<=[.;!?])\s+|\n+")
_WORD = re.compile(r"[a-z0-9]+")
_MIN_SENTENCE_WORDS = 4
_FOLLOW_UP_MAX_WORDS = 8

_QUESTION_STOPWORDS = frozenset({
    "a", "an", "and", "are", "can", "do", "does", "for", "how", "i", "if",
    "in", "is", "it", "me", "of", "on", "or", "the", "there", "they", "this",
    "to", "we", "what", "when", "where", "which", "who", "why", "will",
    "with", "you", "my", "our", "their", "contract", "agreement",
})


@dataclass
class AnswerTopic:
    """
    Question topic with its routing keywords and answer template.

    Attributes:
        name: Topic identifier, also the template name.
        keywords: Word prefixes that route a question to this topic.
        document_patterns: Regexes scoring document sentences for relevance.
        template: Jinja2 source rendered when a relevant sentence exists.
        fallback: Answer used when the document says nothing on the topic.
        fact_pattern: Optional regex with a ``value`` group extracting a
            key fact from the quoted sentence.
    """
    name: str
    keywords: List[str]
    document_patterns: List[str]
    template: str
    fallback: str
    fact_pattern: Optional[str] = None
    _keyword_res: List[Pattern] = field(default_factory=list, init=False, repr=False, compare=False)
    _document_res: List[Pattern] = field(default_factory=list, init=False, repr=False, compare=False)
    _fact_re: Optional[Pattern] = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self):
        self._keyword_res = [
            re.compile(r"\b" + re.escape(k.lower())) for k in self.keywords
        ]
        self._document_res = [re.compile(p, re.IGNORECASE) for p in self.document_patterns]
        if self.fact_pattern:
            self._fact_re = re.compile(self.fact_pattern, re.IGNORECASE)

    def matches_question(self, question: str) -> bool:
        lower = question.lower()
        return any(k.search(lower) for k in self._keyword_res)

    def score_sentence(self, sentence: str) -> int:
        return sum(1 for p in self._document_res if p.search(sentence))

    def extract_fact(self, sentence: str) -> Optional[str]:
        if self._fact_re is None:
            return None
        match = self._fact_re.search(sentence)
        if not match:
            return None
        value = match.group("value").replace("(", "").replace(")", "")
        return " ".join(value.split())


def build_default_topics() -> List[AnswerTopic]:
    """Build the built-in answer topics in routing order."""
    return [
        AnswerTopic(
            name="termination",
            keywords=["terminat", "cancel", "end the", "exit", "early"],
            document_patterns=[r"\bterminat\w*", r"\bcancel\w*", r"\bnotice\b"],
            fact_pattern=(
                r"(?P<value>\(?\d+\)?\s+(?:business\s+|calendar\s+)?"
                r"(?:days?|weeks?|months?))'?\s+(?:prior\s+)?(?:written\s+)?notice"
            ),
            template=(
                "{% if fact %}Yes. {{ subject_title }} can be terminated early "
                "by giving {{ fact }} of notice.{% else %}{{ subject_title }} "
                "addresses termination.{% endif %} "
                "The relevant provision states: \"{{ quote }}\""
            ),
            fallback=(
                "I could not find a termination provision in this contract. "
                "Agreements commonly allow either party to terminate for "
                "convenience with 30 days written notice, and immediately "
                "for a material breach that remains uncured after written notice."
            ),
        ),
        AnswerTopic(
            name="confidentiality",
            keywords=["confidential", "nda", "disclos", "secret", "privacy"],
            document_patterns=[r"\bconfidential\w*", r"\bdisclos\w*", r"\bsecret\w*"],
            fact_pattern=r"(?P<value>\(?\d+\)?\s+years?)",
            template=(
                "{% if fact %}Confidentiality obligations last {{ fact }}. "
                "{% else %}{{ subject_title }} imposes confidentiality "
                "obligations. {% endif %}"
                "The relevant provision states: \"{{ quote }}\""
            ),
            fallback=(
                "I could not find a confidentiality provision in this contract. "
                "Confidentiality obligations typically survive for a fixed period "
                "after termination, and each party must return or destroy "
                "confidential information on request."
            ),
        ),
        AnswerTopic(
            name="payment",
            keywords=["pay", "invoice", "fee", "price", "cost", "late"],
            document_patterns=[r"\bpay\w*", r"\binvoice\w*", r"\bfees?\b", r"\binterest\b"],
            fact_pattern=(
                r"within\s+(?:[a-z]+\s+)?(?P<value>\(?\d+\)?\s+"
                r"(?:business\s+|calendar\s+)?(?:days?|weeks?|months?))"
            ),
            template=(
                "{% if fact %}Payment is due within {{ fact }}. {% endif %}"
                "The payment terms state: \"{{ quote }}\""
            ),
            fallback=(
                "I could not find payment terms in this contract. Service "
                "agreements usually require invoices to be paid within 30 days, "
                "often with interest on late payments."
            ),
        ),
        AnswerTopic(
            name="liability",
            keywords=["liab", "liable", "damage", "indemn", "sue"],
            document_patterns=[
                r"\bliabilit\w*", r"\bliable\b", r"\bdamages\b", r"\bindemn\w*",
            ],
            template=(
                "{{ subject_title }} addresses liability. "
                "The relevant provision states: \"{{ quote }}\""
            ),
            fallback=(
                "I could not find a limitation of liability in this contract. "
                "Many agreements exclude indirect, consequential and punitive "
                "damages and cap each party's total liability at the amount paid "
                "in the 12 months preceding the claim."
            ),
        ),
    ]


class TemplateAnswerGenerator(IAnswerGenerator):
    """
    Default IAnswerGenerator backed by Jinja2 templates.

    Always returns non-empty text; an internal failure yields the
    unable-to-answer message.
    """

    def __init__(
        self,
        topics: Optional[Sequence[AnswerTopic]] = None,
        generic_answer: str = GENERIC_ANSWER,
    ):
        self._topics = list(topics) if topics is not None else build_default_topics()
        self.generic_answer = generic_answer

        templates: Dict[str, str] = {t.name: t.template for t in self._topics}
        templates["__generic__"] = _GENERIC_TEMPLATE
        self.env = Environment(
            loader=DictLoader(templates),
            autoescape=False,
            trim_blocks=True,
            undefined=StrictUndefined,
        )

    @property
    def topics(self) -> List[AnswerTopic]:
        return list(self._topics)

    def answer(
        self,
        document_text: str,
        category: Optional[str],
        history: Sequence[Message],
        question: str,
    ) -> str:
        try:
            answer = self._answer(document_text or "", category, history, question)
        except Exception:
            logger.exception("Answer generation failed")
            return UNABLE_TO_ANSWER
        return answer if answer and answer.strip() else UNABLE_TO_ANSWER

    def route(self, question: str, history: Sequence[Message] = ()) -> Optional[AnswerTopic]:
        """
        Pick the topic for a question.

        Short follow-up questions with no topic keyword of their own
        inherit the topic of the latest routed user question.
        """
        topic = self._match_topic(question)
        if topic is not None:
            return topic
        if len(question.split()) > _FOLLOW_UP_MAX_WORDS:
            return None
        for message in reversed(history):
            if message.role != MessageRole.USER:
                continue
            topic = self._match_topic(message.content)
            if topic is not None:
                return topic
        return None

    def _match_topic(self, question: str) -> Optional[AnswerTopic]:
        for topic in self._topics:
            if topic.matches_question(question):
                return topic
        return None

    def _answer(
        self,
        document_text: str,
        category: Optional[str],
        history: Sequence[Message],
        question: str,
    ) -> str:
        subject = f"this {category}" if category else "the agreement"
        sentences = self._sentences(document_text)
        topic = self.route(question, history)

        if topic is None:
            quote = self._closest_sentence(sentences, question)
            return self._render(
                "__generic__", subject=subject, quote=quote, generic=self.generic_answer
            )

        quote, score = self._best_sentence(sentences, topic)
        if not quote or score == 0:
            logger.debug(f"No '{topic.name}' passage found; using fallback answer")
            return topic.fallback

        return self._render(
            topic.name,
            subject=subject,
            subject_title=subject[:1].upper() + subject[1:],
            quote=quote,
            fact=topic.extract_fact(quote),
            question=question,
        )

    def _render(self, template_name: str, **context) -> str:
        rendered = self.env.get_template(template_name).render(**context)
        return " ".join(rendered.split())

    @staticmethod
    def _sentences(text: str) -> List[str]:
        sentences = []
        for candidate in _SENTENCE_SPLIT.split(text):
            candidate = candidate.strip()
            if len(candidate.split()) >= _MIN_SENTENCE_WORDS:
                sentences.append(candidate)
        return sentences

    @staticmethod
    def _best_sentence(sentences: Sequence[str], topic: AnswerTopic) -> Tuple[Optional[str], int]:
        best: Optional[str] = None
        best_score = 0
        for sentence in sentences:
            score = topic.score_sentence(sentence)
            if score > best_score:
                best, best_score = sentence, score
        return best, best_score

    @staticmethod
    def _closest_sentence(sentences: Sequence[str], question: str) -> Optional[str]:
        terms = set(_WORD.findall(question.lower())) - _QUESTION_STOPWORDS
        if not terms:
            return None
        best: Optional[str] = None
        best_overlap = 1  # require at least two shared terms
        for sentence in sentences:
            overlap = len(terms & set(_WORD.findall(sentence.lower())))
            if overlap > best_overlap:
                best, best_overlap = sentence, overlap
        return best
