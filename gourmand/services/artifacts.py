"""Artifact storage for transmitted recipes."""

from dataclasses import dataclass, field
from pathlib import Path

from gourmand.clients.images import ImageGenerator
from gourmand.utils.logging import get_logger
from gourmand.utils.paths import sanitize_file_stem

logger = get_logger(__name__)


@dataclass
class TransmitResult:
    """Where a transmitted recipe landed on disk."""

    output_directory: Path
    recipe_path: Path
    image_paths: list[Path] = field(default_factory=list)
    trace_id: str | None = None


class ArtifactStore:
    """Writes recipe text and generated photos of the dish."""

    def __init__(self, image_generator: ImageGenerator):
        self.image_generator = image_generator

    def transmit(self, output_root: Path | str, file_stem: str, image_prompt: str, recipe_text: str) -> TransmitResult:
        """Generate the dish photo(s) and save them with the recipe text.

        Files are written as ``<root>/<stem>-<index>.png`` and ``<root>/<stem>.txt``.
        ``file_stem`` comes from model output and is always sanitized first; ``~`` in
        ``output_root`` is expanded.

        Returns:
            The written paths; ``output_directory`` is ``<root>/<stem>``

        Raises:
            ImageGenerationError: The image service failed
            OSError: A file could not be written
        """
        stem = sanitize_file_stem(file_stem)
        if stem != file_stem:
            logger.info(f"Sanitized file stem {file_stem!r} to {stem!r}")

        root = Path(output_root).expanduser()
        output_directory = root / stem

        generated = self.image_generator.generate(image_prompt)

        root.mkdir(parents=True, exist_ok=True)
        result = TransmitResult(
            output_directory=output_directory,
            recipe_path=root / f"{stem}.txt",
            trace_id=generated.trace_id,
        )
        for idx, image in enumerate(generated.images):
            image_path = root / f"{stem}-{idx}.png"
            image_path.write_bytes(image)
            result.image_paths.append(image_path)

        if not generated.images:
            logger.warning(f"No images generated for {stem}, saving recipe text only")

        result.recipe_path.write_text(recipe_text, encoding="utf-8")
        logger.info(f"Saved recipe to {result.recipe_path} with {len(result.image_paths)} image(s)")

        return result
