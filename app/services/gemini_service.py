"""AI service for file summaries and the vault assistant via the Gemini REST API"""
import base64
import httpx
from app.config import settings
from app.core.exceptions import AnalysisError
from app.schemas.file import FileRecord
from typing import List, Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)

# Gemini API Configuration
GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

UNSUPPORTED_FORMAT_SUMMARY = "Format not supported for AI analysis."
EMPTY_SUMMARY = "No analysis available."


class ContentCategory:
    IMAGE = "image"
    DOCUMENT = "document"
    AUDIO = "audio"


# Task prompt per content category
SUMMARY_PROMPTS = {
    ContentCategory.IMAGE: (
        "Briefly analyze this image. Describe what it is, detect the main objects "
        "or read any visible text. Answer in at most 20 words."
    ),
    ContentCategory.DOCUMENT: (
        "Summarize the content of this document in one concise sentence."
    ),
    ContentCategory.AUDIO: (
        "Transcribe this audio and summarize what is said in one concise sentence."
    ),
}

ASSISTANT_PROMPT = """You are the CloudVault assistant. You help the user find information
in their stored files and answer general questions. Be brief and direct.

The user's files:
{file_context}"""


def content_category(mime_type: str) -> Optional[str]:
    """Bucket a MIME type into a summary prompt category"""
    mime_type = (mime_type or "").lower()
    if mime_type.startswith("image/"):
        return ContentCategory.IMAGE
    if mime_type.startswith("text/") or mime_type == "application/pdf":
        return ContentCategory.DOCUMENT
    if mime_type.startswith("audio/"):
        return ContentCategory.AUDIO
    return None


class GeminiService:
    """Service for interacting with Gemini"""

    def __init__(self, api_key: str = None, model: str = None):
        self.gemini_api_key = api_key if api_key is not None else settings.GEMINI_API_KEY
        self.gemini_model = model or settings.GEMINI_MODEL

    async def _make_gemini_request(
        self,
        contents: List[Dict[str, Any]],
        system_prompt: Optional[str] = None,
        temperature: float = 0.4,
    ) -> Dict[str, Any]:
        """
        Make a request to Gemini API.

        Raises:
            httpx.HTTPStatusError: If the request fails
        """
        request_body: Dict[str, Any] = {
            "contents": contents,
            "generationConfig": {
                "temperature": temperature,
            }
        }
        if system_prompt:
            request_body["systemInstruction"] = {"parts": [{"text": system_prompt}]}

        api_url = GEMINI_API_URL.format(model=self.gemini_model) + f"?key={self.gemini_api_key}"

        async with httpx.AsyncClient(timeout=settings.GEMINI_TIMEOUT_SECONDS) as client:
            response = await client.post(api_url, json=request_body)
            response.raise_for_status()
            return response.json()

    @staticmethod
    def _extract_text(result: Dict[str, Any]) -> str:
        candidates = result.get("candidates") or []
        if not candidates:
            return ""
        parts = candidates[0].get("content", {}).get("parts", [])
        return "".join(p.get("text", "") for p in parts).strip()

    async def summarize(self, content: bytes, mime_type: str) -> str:
        """
        Summarize file content

        Returns a fixed message for formats without a prompt, without
        calling the API.

        Raises:
            AnalysisError: If the model call fails
        """
        category = content_category(mime_type)
        if category is None:
            return UNSUPPORTED_FORMAT_SUMMARY

        if not self.gemini_api_key:
            raise AnalysisError("AI analysis is not configured")

        contents = [{
            "role": "user",
            "parts": [
                {
                    "inlineData": {
                        "mimeType": mime_type,
                        "data": base64.b64encode(content).decode("ascii"),
                    }
                },
                {"text": SUMMARY_PROMPTS[category]},
            ],
        }]

        try:
            logger.info(f"Requesting {category} summary from Gemini ({self.gemini_model})")
            result = await self._make_gemini_request(contents)
        except httpx.HTTPStatusError as e:
            logger.error(f"Gemini error: {e.response.status_code} - {e.response.text}")
            raise AnalysisError("AI analysis failed. Please try again.")
        except httpx.RequestError as e:
            logger.error(f"Gemini request error: {str(e)}")
            raise AnalysisError("AI service unreachable. Please try again.")

        return self._extract_text(result) or EMPTY_SUMMARY

    @staticmethod
    def _build_file_context(files: List[FileRecord]) -> str:
        if not files:
            return "(no files)"
        lines = []
        for f in files:
            line = f"- {f.name} ({f.type}, {f.size} bytes, uploaded {f.upload_date:%Y-%m-%d} by {f.uploader})"
            if f.ai_summary:
                line += f": {f.ai_summary}"
            lines.append(line)
        return "\n".join(lines)

    async def ask(
        self,
        question: str,
        history: List[Dict[str, str]],
        files: List[FileRecord],
    ) -> str:
        """Answer a question with the user's file list as context"""
        if not self.gemini_api_key:
            raise AnalysisError("AI assistant is not configured")

        contents = []
        for msg in history:
            role = "user" if msg["role"] == "user" else "model"
            contents.append({"role": role, "parts": [{"text": msg["text"]}]})
        contents.append({"role": "user", "parts": [{"text": question}]})

        system_prompt = ASSISTANT_PROMPT.format(file_context=self._build_file_context(files))

        try:
            result = await self._make_gemini_request(contents, system_prompt=system_prompt, temperature=0.7)
        except httpx.HTTPError as e:
            logger.error(f"Gemini assistant error: {str(e)}")
            raise AnalysisError("The assistant is unavailable right now. Please try again.")

        return self._extract_text(result) or "Sorry, I could not come up with an answer."


def get_gemini_service() -> GeminiService:
    """FastAPI dependency"""
    return GeminiService()
