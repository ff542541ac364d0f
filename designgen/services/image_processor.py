import io

import numpy as np
from PIL import Image
from scipy import ndimage
from scipy.ndimage import gaussian_filter
from skimage.metrics import structural_similarity as ssim

# Silhouette pixels darker than this (0-255 grayscale) belong to the subject
SILHOUETTE_THRESHOLD = 96

# If the silhouette is this similar to the original, the model did not edit it
UNCHANGED_SSIM = 0.97

# Blur applied before the similarity check to ignore compression noise
BLUR_SIGMA = 1.5

# Connected regions smaller than this many pixels are dropped from the mask
MIN_REGION_SIZE = 200

# Softens the cut-out edge
FEATHER_SIGMA = 1.0


class ImageProcessor:
    """Pixel work on generated images: normalisation and background cut-out."""

    def to_png(self, image_data: bytes) -> bytes:
        """Re-encode any Pillow-readable image as PNG."""
        image = Image.open(io.BytesIO(image_data))
        if image.mode not in ("RGB", "RGBA"):
            image = image.convert("RGBA")
        return self._encode(image)

    def cut_out_subject(self, original_data: bytes, silhouette_data: bytes) -> bytes:
        """
        Make everything but the subject transparent.

        ``silhouette_data`` is the original repainted with the subject in solid
        black on a white background. Dark silhouette pixels become the alpha
        mask applied to the original. Raises ValueError when the silhouette is
        unusable.
        """
        original = Image.open(io.BytesIO(original_data)).convert("RGBA")
        silhouette = Image.open(io.BytesIO(silhouette_data)).convert("L")

        if silhouette.size != original.size:
            silhouette = silhouette.resize(original.size, Image.Resampling.LANCZOS)

        original_gray = np.array(original.convert("L"), dtype=np.float64)
        silhouette_gray = np.array(silhouette, dtype=np.float64)

        score = ssim(
            gaussian_filter(original_gray, sigma=BLUR_SIGMA),
            gaussian_filter(silhouette_gray, sigma=BLUR_SIGMA),
            data_range=255,
        )
        if score >= UNCHANGED_SSIM:
            raise ValueError(f"Silhouette is unchanged from the original (SSIM {score:.3f})")

        mask = self._clean_mask(silhouette_gray < SILHOUETTE_THRESHOLD)
        if not np.any(mask):
            raise ValueError("Silhouette contains no subject")

        alpha = gaussian_filter(mask.astype(np.float64), sigma=FEATHER_SIGMA)
        result = np.array(original)
        result[:, :, 3] = np.clip(alpha * 255, 0, 255).astype(np.uint8)

        return self._encode(Image.fromarray(result, "RGBA"))

    def _clean_mask(self, mask: np.ndarray) -> np.ndarray:
        """Drop small noise regions, then close and fill holes in the subject."""
        structure = ndimage.generate_binary_structure(2, 2)

        labeled, num_features = ndimage.label(mask)
        if num_features == 0:
            return mask

        sizes = ndimage.sum(mask, labeled, range(1, num_features + 1))
        keep = np.isin(labeled, np.nonzero(sizes >= MIN_REGION_SIZE)[0] + 1)

        # A small subject is still a subject
        if not np.any(keep):
            keep = mask

        keep = ndimage.binary_closing(keep, structure, iterations=2)
        return ndimage.binary_fill_holes(keep)

    def _encode(self, image: Image.Image) -> bytes:
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        return buffer.getvalue()


image_processor = ImageProcessor()
