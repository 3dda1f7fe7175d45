"""Recipe transmission tool."""

from gourmand.models.session import ConversationState
from gourmand.services.artifacts import ArtifactStore
from gourmand.tools.base import ToolArgument, ToolDefinition, ToolSpec

TRANSMIT_RECIPE_SPEC = ToolSpec(
    name="transmit_recipe",
    description=(
        "This tool transmits a recipe (title, ingredients, instructions, and shopping list), a prompt for an "
        "image generation model to produce an appetizing photo of the finished dish, and a file stem for saving "
        "the data. It returns the location the recipe was saved to so that you can tell the user."
    ),
    arguments=(
        ToolArgument(
            name="recipe_details",
            description="The actual recipe, including title, ingredients, instructions, and shopping list",
        ),
        ToolArgument(
            name="image_prompt",
            description="A prompt suitable for an image generation model to produce an appetizing photo of the dish",
        ),
        ToolArgument(
            name="file_stem",
            description=(
                "A file stem for this recipe, all lowercase, with words separated by underscores and a random "
                "4 digit number appended, such as banana_bread_4821"
            ),
        ),
    ),
)


def create_transmit_recipe_tool(artifact_store: ArtifactStore) -> ToolDefinition:
    async def transmit_recipe_handler(arguments: dict[str, str], state: ConversationState) -> str:
        result = artifact_store.transmit(
            state.output_root,
            file_stem=arguments["file_stem"],
            image_prompt=arguments["image_prompt"],
            recipe_text=arguments["recipe_details"],
        )
        return f"written output to {result.output_directory}"

    return ToolDefinition(spec=TRANSMIT_RECIPE_SPEC, handler=transmit_recipe_handler)
