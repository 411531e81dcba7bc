"""
OCR processors for scanned receipts and attestations.

This module provides two OCR engines that turn an image into text lines:
1. PaddleOCR (open source) - runs locally, French model by default
2. NVIDIA OCR (via API) - hosted, requires an API key

Line breaks are preserved in the returned text: the amount locators fall back
to a line-by-line search.
"""

import base64
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

import cv2
import requests

logger = logging.getLogger(__name__)


class BaseOCRProcessor(ABC):
    """Abstract base class for OCR processors."""

    @abstractmethod
    def extract_text(self, image_path: str) -> str:
        """Extract text from image file, one recognized line per text line."""
        pass

    @abstractmethod
    def extract_text_with_confidence(self, image_path: str) -> List[Dict]:
        """Extract recognized lines with their confidence."""
        pass


class NVIDIAOCRProcessor(BaseOCRProcessor):
    """
    NVIDIA OCR processor using NVIDIA NIM (Neural Inference Microservices).

    This processor sends the image to NVIDIA's hosted OCR endpoint.
    Requires an NVIDIA API key for authentication.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://ai.api.nvidia.com/v1/cv/nvidia/ocr",
        timeout: float = 30
    ):
        """
        Initialize NVIDIA OCR processor.

        Args:
            api_key: NVIDIA API key for authentication
            base_url: Base URL for NVIDIA OCR API
            timeout: Request timeout in seconds
        """
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json"
        }

    def extract_text(self, image_path: str) -> str:
        """
        Extract text from image using NVIDIA OCR API.

        Args:
            image_path: Path to the image file

        Returns:
            Extracted text as string
        """
        try:
            with open(image_path, "rb") as f:
                image_b64 = base64.b64encode(f.read()).decode()

            payload = {
                "messages": [
                    {
                        "role": "user",
                        "content": (
                            "Transcribe every line of this French financial document, "
                            "keeping one output line per printed line: "
                            f"<img src=\"data:image/jpeg;base64,{image_b64}\" />"
                        )
                    }
                ],
                "max_tokens": 2048,
                "temperature": 0.1
            }

            response = requests.post(self.base_url, headers=self.headers, json=payload, timeout=self.timeout)
            response.raise_for_status()

            result = response.json()
            extracted_text = result["choices"][0]["message"]["content"]

            logger.info(f"Successfully extracted text using NVIDIA OCR: {len(extracted_text)} characters")
            return extracted_text

        except requests.exceptions.RequestException as e:
            logger.error(f"NVIDIA OCR API request failed: {e}")
            raise

    def extract_text_with_confidence(self, image_path: str) -> List[Dict]:
        """
        Extract recognized lines using NVIDIA OCR API.

        The API does not report confidence; every line gets a fixed 0.9.
        """
        text = self.extract_text(image_path)
        return [
            {'text': line.strip(), 'confidence': 0.9}
            for line in text.split('\n')
            if line.strip()
        ]


class PaddleOCRProcessor(BaseOCRProcessor):
    """
    PaddleOCR processor for local text recognition.

    No API key required. The engine is created per processor instance, so
    each pipeline owns its own OCR engine.
    """

    def __init__(self, use_angle_cls: bool = True, lang: str = 'fr'):
        """
        Initialize PaddleOCR processor.

        Args:
            use_angle_cls: Whether to use angle classification
            lang: Language for OCR (default: French)
        """
        try:
            from paddleocr import PaddleOCR
            self.ocr = PaddleOCR(use_angle_cls=use_angle_cls, lang=lang, show_log=False)
            logger.info(f"PaddleOCR initialized successfully (lang={lang})")
        except ImportError:
            logger.error("PaddleOCR not installed. Please install with: pip install paddleocr")
            raise

    def extract_text(self, image_path: str) -> str:
        """
        Extract text from image using PaddleOCR.

        Args:
            image_path: Path to the image file

        Returns:
            Recognized lines joined with newlines
        """
        lines = self.extract_text_with_confidence(image_path)
        return '\n'.join(line['text'] for line in lines)

    def extract_text_with_confidence(self, image_path: str) -> List[Dict]:
        """
        Extract recognized lines with confidence and bounding box.

        Args:
            image_path: Path to the image file

        Returns:
            List of dictionaries with text, confidence and bbox
        """
        result = self.ocr.ocr(image_path, cls=True)

        extracted_data = []
        if result and result[0]:
            for line in result[0]:
                if line and len(line) >= 2:
                    bbox, (text, confidence) = line
                    extracted_data.append({
                        'text': text,
                        'confidence': confidence,
                        'bbox': bbox
                    })

        logger.info(f"Successfully extracted {len(extracted_data)} text lines using PaddleOCR")
        return extracted_data


class OCRProcessorFactory:
    """Factory class for creating OCR processors."""

    @staticmethod
    def create_processor(processor_type: str = "paddle", **kwargs) -> BaseOCRProcessor:
        """
        Create an OCR processor instance.

        Args:
            processor_type: Type of processor ("nvidia" or "paddle")
            **kwargs: Additional arguments for processor initialization

        Returns:
            OCR processor instance
        """
        if processor_type.lower() == "nvidia":
            if not kwargs.get("api_key"):
                raise ValueError("NVIDIA OCR processor requires 'api_key' parameter")
            return NVIDIAOCRProcessor(**kwargs)
        elif processor_type.lower() == "paddle":
            return PaddleOCRProcessor(**kwargs)
        else:
            raise ValueError(f"Unknown processor type: {processor_type}")

    @staticmethod
    def create_with_fallback(nvidia_api_key: Optional[str] = None) -> BaseOCRProcessor:
        """
        Create OCR processor with fallback logic.

        Args:
            nvidia_api_key: NVIDIA API key (if available)

        Returns:
            OCR processor instance (NVIDIA if API key available, otherwise PaddleOCR)
        """
        if nvidia_api_key:
            return NVIDIAOCRProcessor(api_key=nvidia_api_key)

        return PaddleOCRProcessor()


def preprocess_image(image_path: str, output_path: Optional[str] = None, target_size: Optional[Tuple[int, int]] = None) -> str:
    """
    Clean up a phone photo or scan before OCR.

    Args:
        image_path: Path to the input image
        output_path: Where to save the result (defaults to <name>_preprocessed.<ext>)
        target_size: Target size for resizing (width, height)

    Returns:
        Path to the preprocessed image
    """
    image = cv2.imread(image_path)
    if image is None:
        raise ValueError(f"Could not read image: {image_path}")

    gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    denoised = cv2.fastNlMeansDenoising(gray)
    thresh = cv2.adaptiveThreshold(
        denoised, 255, cv2.ADAPTIVE_THRESH_GAUSSIAN_C, cv2.THRESH_BINARY, 11, 2
    )

    if target_size:
        thresh = cv2.resize(thresh, target_size, interpolation=cv2.INTER_CUBIC)

    if output_path is None:
        stem, dot, extension = image_path.rpartition('.')
        output_path = f"{stem}_preprocessed.{extension}" if dot else f"{image_path}_preprocessed.png"
    cv2.imwrite(output_path, thresh)

    logger.info(f"Image preprocessed and saved to: {output_path}")
    return output_path
