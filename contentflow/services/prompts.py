"""Prompt construction for the repurposing call."""

from __future__ import annotations

from dataclasses import dataclass

from contentflow.services.extractor import ExtractedContent

PLATFORM_KEYS = ("twitter", "linkedin", "newsletter", "video")

SYSTEM_PROMPT = """You are an expert content repurposing specialist. Your task is to transform long-form content into engaging, platform-specific formats while maintaining the core message and value.

Guidelines:
- Keep the original tone and key insights
- Make content engaging and actionable
- Use appropriate formatting for each platform
- Include relevant hashtags where appropriate
- Ensure content is ready to post without editing

Return your response as a JSON object with the following structure:
{
  "twitter": "Twitter thread content (use \U0001f9f5 for thread indicator, number tweets 1/X, 2/X, etc.)",
  "linkedin": "LinkedIn post content (professional tone, include relevant hashtags)",
  "newsletter": "Email newsletter section (3-5 key takeaways in bullet points)",
  "video": "Short video script (30-60 seconds, include hook and call-to-action)"
}"""

USER_PROMPT_TEMPLATE = """Transform this content into multiple formats:

Title: {title}

Content: {content}

Please create engaging, platform-specific versions that capture the essence of this content."""


@dataclass(frozen=True)
class PromptPair:
    """System and user prompt for one generation call."""

    system_prompt: str
    user_prompt: str

    def as_messages(self) -> list[dict[str, str]]:
        """Return the prompts as a chat message list."""
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": self.user_prompt},
        ]


def build_prompts(extracted: ExtractedContent) -> PromptPair:
    """Build the prompt pair for an extracted page.

    Title and content are interpolated verbatim.
    """
    user_prompt = USER_PROMPT_TEMPLATE.format(
        title=extracted.title,
        content=extracted.content,
    )
    return PromptPair(system_prompt=SYSTEM_PROMPT, user_prompt=user_prompt)
