"""System prompts and conversation builders for the two ask-ai protocols."""

from typing import List, Optional

from ..models.messages import Message
from ..models.patches import PatchMarkers


INITIAL_SYSTEM_PROMPT = (
    "ONLY USE HTML, CSS AND JAVASCRIPT. If you want to use ICON make sure to import "
    "the library first. Try to create the best UI possible by using only HTML, CSS "
    "and JAVASCRIPT. Use as much as you can TailwindCSS for the CSS, if you can't do "
    "something with TailwindCSS, then use custom CSS (make sure to import "
    '<script src="https://cdn.tailwindcss.com"></script> in the head). Also, try to '
    "elaborate as much as you can, to create something unique. ALWAYS GIVE THE "
    "RESPONSE INTO A SINGLE HTML FILE"
)

FOLLOW_UP_SYSTEM_PROMPT_TEMPLATE = """You are an expert web developer modifying an existing HTML file.
The user wants to apply changes based on their request.
You MUST output ONLY the changes required using the following SEARCH/REPLACE block format. Do NOT output the entire file.
Explain the changes briefly *before* the blocks if necessary, but the code changes THEMSELVES MUST be within the blocks.
Format Rules:
1. Start with {search_start}
2. Provide the exact lines from the current code that need to be replaced.
3. Use {divider} to separate the search block from the replacement.
4. Provide the new lines that should replace the original lines.
5. End with {replace_end}
6. You can use multiple SEARCH/REPLACE blocks if changes are needed in different parts of the file.
7. To insert code, use an empty SEARCH block (only {search_start} and {divider} on their lines) if inserting at the very beginning, otherwise provide the line *before* the insertion point in the SEARCH block and include that line plus the new lines in the REPLACE block.
8. To delete code, provide the lines to delete in the SEARCH block and leave the REPLACE block empty (only {divider} and {replace_end} on their lines).
9. IMPORTANT: The SEARCH block must *exactly* match the current code, including indentation and whitespace.
Example Modifying Code:
```
Some explanation...
{search_start}
    <h1>Old Title</h1>
{divider}
    <h1>New Title</h1>
{replace_end}
```"""

DEFAULT_PREVIOUS_PROMPT = "You are modifying the HTML file based on the user's request."

INITIAL = "initial"
FOLLOW_UP = "follow-up"


def get_system_prompt(kind: str, markers: PatchMarkers, lang: Optional[str] = "en") -> str:
    # TODO: add zh prompts; "zh" currently uses the English text.
    if kind == INITIAL:
        return INITIAL_SYSTEM_PROMPT
    return FOLLOW_UP_SYSTEM_PROMPT_TEMPLATE.format(
        search_start=markers.search_start,
        divider=markers.divider,
        replace_end=markers.replace_end,
    )


def initial_user_content(
    prompt: Optional[str],
    redesign_markdown: Optional[str] = None,
    html: Optional[str] = None,
) -> str:
    if redesign_markdown:
        return (
            f"Here is my current design as a markdown:\n\n{redesign_markdown}\n\n"
            "Now, please create a new design based on this markdown."
        )
    if html:
        return (
            f"Here is my current HTML code:\n\n```html\n{html}\n```\n\n"
            "Now, please create a new design based on this HTML."
        )
    return prompt or ""


def build_initial_messages(
    system_prompt: str,
    prompt: Optional[str],
    redesign_markdown: Optional[str] = None,
    html: Optional[str] = None,
) -> List[Message]:
    return [
        Message.system(system_prompt),
        Message.user(initial_user_content(prompt, redesign_markdown, html)),
    ]


def build_follow_up_messages(
    system_prompt: str,
    prompt: str,
    html: str,
    previous_prompt: Optional[str] = None,
    selected_element_html: Optional[str] = None,
) -> List[Message]:
    context = f"The current code is: \n```html\n{html}\n```"
    if selected_element_html:
        context += (
            "\n\nYou have to update ONLY the following element, NOTHING ELSE: "
            f"\n\n```html\n{selected_element_html}\n```"
        )
    return [
        Message.system(system_prompt),
        Message.user(previous_prompt or DEFAULT_PREVIOUS_PROMPT),
        Message.assistant(context),
        Message.user(prompt),
    ]
