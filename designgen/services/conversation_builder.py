from typing import Sequence

from designgen.models.conversation import Conversation, Message
from designgen.models.schemas import Artboard, DesignDocument, PoolImage, ResolvedDesign

CONCEPT_PROMPT = """You are a senior creative graphic designer writing the concept for a single design.
Analyze the provided images and the user's request, and describe how you would approach a design that meets their needs.
Consider layout, colors, typography and the overall aesthetic.

Someone else will implement the design exactly as you describe it and will not add ideas of their own, so the concept must be detailed and complete:
- list every element of the design, big and small, and keep a consistent theme;
- give the exact position, size, rotation and color of every element, in pixels;
- say which elements are images and describe what each image shows;
- say which elements sit on top of which.

Reply with the design concept only, in markdown. Do not reply with JSON."""

DESIGN_PROMPT = """You are a graphic designer turning a design concept into a structured design.
The artboard is the entire area of the design; anything outside it is cropped, and you may place items beyond its edges for bleed effects.

Response rules:
1. ONLY reply with JSON that matches the provided schema.
2. Reply with the raw JSON only, without markdown code fences, explanations or comments.
3. Describe every new_image in detail; the description is the prompt used to generate it.
4. Reuse an existing image with an existing_image item and its exact id. Only these ids exist: {image_ids}. Never invent an id.
5. Set remove_background on a new_image when it should be cut out from its background.

Design rules:
6. Specify every element individually, with its own position and size.
7. Use zIndex to control layering; text is usually above everything else.
8. Opacity runs from 0 to 100.
9. For text, prefer fitText and size the text box; set fontSize only when fitText is false.
10. Include ALL the elements of the design concept.

Current artboard size: {artboard_size}. You may change it if the design needs to.

Edit the current design below rather than starting over.
Any item of the current design that you leave out of your response is DELETED from the canvas. Only leave items out when they should be removed.

Current design in JSON format:
{design_json}

Follow this design concept exactly:
{concept}"""


def _clone_history(history: Sequence[Message]) -> list[Message]:
    return [message.model_copy(deep=True) for message in history]


def _instruction(text: str) -> Message:
    return Message.text("developer", text)


def build_concept_request(history: Sequence[Message]) -> Conversation:
    """Conversation asking the model for a free-text design concept."""
    messages = _clone_history(history)
    messages.append(_instruction(CONCEPT_PROMPT))
    return Conversation(messages=messages)


def build_design_request(
    history: Sequence[Message],
    concept: str,
    previous_document: DesignDocument | ResolvedDesign | None,
    artboard_size_hint: Artboard | str | None = None,
    available_images: Sequence[PoolImage] = (),
) -> Conversation:
    """
    Conversation asking the model for a schema-conformant design document.

    The previous document is embedded verbatim so the model edits it; items it
    drops from its answer are deleted.
    """
    if isinstance(artboard_size_hint, Artboard):
        artboard_size = artboard_size_hint.size_hint()
    else:
        artboard_size = artboard_size_hint or "unknown"

    if previous_document is not None:
        design_json = previous_document.to_json(indent=2)
    else:
        design_json = "none yet, create a new design"

    image_ids = ", ".join(image.id for image in available_images) or "none"

    prompt = DESIGN_PROMPT.format(
        image_ids=image_ids,
        artboard_size=artboard_size,
        design_json=design_json,
        concept=concept or "No concept was written; design directly from the conversation.",
    )

    messages = _clone_history(history)
    messages.append(_instruction(prompt))
    return Conversation(messages=messages)
