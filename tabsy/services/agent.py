"""
Workspace assistant backed by Gemini through LangChain.

The agent is one request/response call: a prompt string goes in, free text
comes out. Everything it knows about the user's day is composed into the
prompt by the caller (see build_context()).
"""

import logging
from datetime import datetime

from langchain_core.language_models import BaseChatModel
from langchain_core.output_parsers import StrOutputParser
from langchain_core.prompts import ChatPromptTemplate
from langchain_google_genai import ChatGoogleGenerativeAI

from tabsy.config import Settings
from tabsy.errors import AgentError
from tabsy.services.text_cleaner import prompt_excerpt
from tabsy.timeutil import utcnow

logger = logging.getLogger(__name__)

INSTRUCTIONS = """You are an AI personal assistant helping users manage their day effectively.

Your capabilities include:
1. Calendar Management: review events, suggest new events and changes, find free time
2. Email Management: review unread emails, draft replies, summarize the inbox
3. Task Management: review tasks, suggest status changes, prioritize work
4. Daily Planning: analyze all information and provide actionable daily summaries

The calendar context covers a 30-day window (7 days back, 23 days ahead from today).

When interacting with users:
- Be proactive but not intrusive
- Provide clear, actionable recommendations
- Explain your reasoning when suggesting changes
- Consider context like meeting importance, email urgency, and task deadlines
- Optimize for productivity and work-life balance

Response Format:
- Use a conversational tone for explanations
- Always summarize key action items at the end
- Flag urgent items that need immediate attention

Today's date is: {today} ({weekday}). Current time (UTC): {now}"""

EMAIL_EXCERPT_CHARS = 300

AGENT_PROMPT = ChatPromptTemplate.from_messages([
    ("system", INSTRUCTIONS),
    ("human", "{input}")
])

# ============ CANNED PROMPTS ============

DAILY_SUMMARY_PROMPT = """Please analyze my day and provide a comprehensive summary.

Steps:
1. Check my calendar events for today
2. Review unread emails and identify urgent ones
3. Get my active tasks and prioritize them
4. Find free time slots in my calendar
5. Provide recommendations for optimizing my day

Format your response as a structured summary with:
- Top 3 priority items for today
- Urgent emails requiring response
- Recommended task order
- Suggested schedule adjustments
- Available focus time blocks"""

OPTIMIZE_SCHEDULE_PROMPT = """Analyze my calendar and tasks, then suggest optimizations for better productivity.

Consider:
- Meeting clustering to create focus blocks
- Buffer time between meetings
- Alignment of tasks with available time slots
- Energy management (complex tasks in morning, admin in afternoon)

Provide specific, actionable recommendations."""

URGENT_ITEMS_PROMPT = """Identify all urgent items requiring immediate attention:

1. Meetings starting within the next 2 hours
2. High-priority emails from today
3. Tasks due within the next 4 hours

For each urgent item, suggest an immediate action."""


def create_llm(settings: Settings) -> ChatGoogleGenerativeAI:
    """Gemini chat model configured from settings."""
    return ChatGoogleGenerativeAI(
        model=settings.LLM_MODEL,
        google_api_key=settings.GOOGLE_API_KEY,
        temperature=settings.LLM_TEMPERATURE,
    )


class ConversationalAgent:
    """Prompt in, text out. No tools, no streaming, no retries."""

    def __init__(self, llm: BaseChatModel, clock=utcnow):
        self.chain = AGENT_PROMPT | llm | StrOutputParser()
        self.clock = clock

    def generate(self, prompt: str) -> str:
        """
        Run one completion.

        Raises:
            AgentError: If the model call fails
        """
        now = self.clock()
        logger.info("Agent request: %s", prompt[:50])

        try:
            return self.chain.invoke({
                "input": prompt,
                "today": now.date().isoformat(),
                "weekday": now.strftime("%A"),
                "now": now.replace(microsecond=0).isoformat()
            })
        except Exception as e:
            logger.error("Agent request failed: %s", e)
            raise AgentError(f"AI agent request failed: {e}") from e


# ============ CONTEXT ============

def _fmt(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else "none"


def build_context(events: list, emails: list, ranked_tasks: list) -> str:
    """
    Render cached events, unread emails and ranked tasks as a plain-text block.

    Args:
        events: CalendarEvent rows
        emails: Email rows
        ranked_tasks: (task, score) pairs from prioritization.prioritize()
    """
    lines = ["Calendar events:"]
    if events:
        for event in events:
            where = f" @ {event.location}" if event.location else ""
            lines.append(f"- {_fmt(event.start_time)} to {_fmt(event.end_time)}: {event.title}{where}")
    else:
        lines.append("- none")

    lines.append("")
    lines.append("Unread emails:")
    if emails:
        for email in emails:
            lines.append(f"- [{email.priority}] {email.subject} (from {email.sender}, {_fmt(email.received_at)})")
            excerpt = prompt_excerpt(email.body_text or email.snippet, EMAIL_EXCERPT_CHARS)
            if excerpt:
                lines.append(f"  {' '.join(excerpt.split())}")
    else:
        lines.append("- none")

    lines.append("")
    lines.append("Active tasks by urgency:")
    if ranked_tasks:
        for task, urgency in ranked_tasks:
            lines.append(
                f"- ({urgency}) {task.title} [{task.priority}, {task.status}, due {_fmt(task.due_date)}]"
            )
    else:
        lines.append("- none")

    return "\n".join(lines)


def compose_prompt(request: str, context: str) -> str:
    """Canned request followed by the context it should work from."""
    return f"{request}\n\nHere is my current data:\n\n{context}"
