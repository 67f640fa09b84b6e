"""
Generate learning responses from a session summary.

Two backends are supported: the OpenAI chat completions API with a strict
JSON schema, and the `claude -p` CLI. Either way the reply is reduced to a
JSON object and validated into a LearningResponse.
"""

import json
import logging
import queue
import re
import subprocess
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from openai import OpenAI, OpenAIError
from pydantic import ValidationError

from .knowledge import LearningResponse
from .utils.errors import GenerationError

if TYPE_CHECKING:
    from .config import AppConfig

logger = logging.getLogger(__name__)

SCHEMA_NAME = "structured_learning_response"
DISCONNECTED_MESSAGE = "Background AI worker disconnected"

LEARNING_SCHEMA: dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "response": {
            "type": "array",
            "description": "a list of responses",
            "items": {
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    "knowledge_type_group": {
                        "type": "string",
                        "description": (
                            "a name that describes the type of knowledge for grouping purposes. "
                            "These should be specific for example: data types, modules, "
                            "libraries, frameworks, macros, keywords, etc"
                        ),
                    },
                    "summary": {
                        "type": "string",
                        "description": "a short description of the concept to learn",
                    },
                    "quiz": {
                        "type": "array",
                        "description": "a list of questions related to the subject",
                        "items": {
                            "type": "object",
                            "additionalProperties": False,
                            "properties": {
                                "question": {
                                    "type": "string",
                                    "description": "a question about this knowledge type that will test the user",
                                },
                                "options": {
                                    "type": "array",
                                    "description": "a multi-choice list of answer options",
                                    "items": {
                                        "type": "object",
                                        "additionalProperties": False,
                                        "properties": {
                                            "selection": {
                                                "type": "string",
                                                "description": "one of the multiple choice selection answers to the question",
                                            },
                                            "is_correct_answer": {
                                                "type": "boolean",
                                                "description": "this should be set to true if it's the correct answer to the question",
                                            },
                                        },
                                        "required": ["selection", "is_correct_answer"],
                                    },
                                },
                            },
                            "required": ["question", "options"],
                        },
                    },
                    "resources": {
                        "type": "array",
                        "description": (
                            "an optional list of resources that can help the user "
                            "learn more about the knowledge subject"
                        ),
                        "items": {"type": "string"},
                    },
                    "knowledge_type_language": {
                        "type": "string",
                        "description": "the language that this quiz is related to",
                    },
                },
                "required": [
                    "knowledge_type_group",
                    "summary",
                    "quiz",
                    "resources",
                    "knowledge_type_language",
                ],
            },
        }
    },
    "required": ["response"],
}

SYSTEM_PROMPT_TEMPLATE = """You are a precise curriculum planner that helps the student learn about coding concepts.
You will produce a quiz that will teach the user about a coding concept based on the provided context.
You should base each quiz item on the provided context to help the student learn new language features or concepts.
Context examples include tool calls such as shell commands and file edits. The code being changed is what should be considered for quiz content.
Example tool call arguments:
```
{"command":["bash","-lc","apply_patch <<'PATCH'
*** Begin Patch
*** Update File: src/app/models.py
@@
-    language: Optional[str] = None
+    language: str = Field(default="", alias="knowledge_type_language")
*** End Patch
PATCH
"],"workdir":"/home/user/project"}
```
Example subset of what should actually be considered for learning content:
```
Update File: src/app/models.py
@@
-    language: Optional[str] = None
+    language: str = Field(default="", alias="knowledge_type_language")
```
All questions should be language specific and should not quiz based on implementation of the specific program.
You should return a minimum of {MIN_QUIZ_QUESTIONS} quiz questions.
Return JSON that strictly matches the provided schema."""


def system_prompt(min_quiz_questions: int = 5) -> str:
    return SYSTEM_PROMPT_TEMPLATE.replace("{MIN_QUIZ_QUESTIONS}", str(min_quiz_questions))


def build_prompt(summary: str) -> str:
    """User prompt: instructions, the schema and the session summary."""
    schema = json.dumps(LEARNING_SCHEMA, indent=2)
    return (
        "Analyse the following session summary and produce a JSON payload that adheres to "
        "the provided schema. Return only valid JSON with double-quoted keys and strings.\n\n"
        f"Schema:\n```json\n{schema}\n```\n\n"
        f"Session summary:\n```markdown\n{summary}\n```"
    )


def extract_json_from_response(response: str) -> dict[str, Any]:
    """
    Extract a JSON object from a model reply.

    Replies may wrap the JSON in markdown code blocks or add explanatory
    text. Returns an empty dict if no JSON object is found.
    """
    # Try to find JSON in code blocks first
    json_match = re.search(r"```(?:json)?\s*\n?([\s\S]*?)\n?```", response)
    if json_match:
        try:
            result = json.loads(json_match.group(1))
            if isinstance(result, dict):
                return result
        except json.JSONDecodeError:
            pass

    try:
        result = json.loads(response)
        if isinstance(result, dict):
            return result
    except json.JSONDecodeError:
        pass

    # Outermost braces
    json_match = re.search(r"\{[\s\S]*\}", response)
    if json_match:
        try:
            result = json.loads(json_match.group(0))
            if isinstance(result, dict):
                return result
        except json.JSONDecodeError:
            pass

    return {}


def call_claude_code(prompt: str, timeout: int = 300) -> str:
    """
    Call Claude Code CLI with a prompt.

    Raises:
        subprocess.TimeoutExpired: If the command times out
        subprocess.CalledProcessError: If the command fails
    """
    result = subprocess.run(
        ["claude", "-p", prompt],
        capture_output=True,
        text=True,
        timeout=timeout,
    )
    if result.returncode != 0:
        raise subprocess.CalledProcessError(
            result.returncode, ["claude", "-p"], result.stdout, result.stderr
        )
    return result.stdout.strip()


def parse_learning_response(text: str) -> LearningResponse:
    """Validate a model reply into a LearningResponse.

    Raises:
        GenerationError: If the reply holds no usable JSON object
    """
    payload = extract_json_from_response(text)
    if not payload:
        raise GenerationError("model response did not contain a JSON object")
    try:
        return LearningResponse.model_validate(payload)
    except ValidationError as e:
        raise GenerationError(f"failed to deserialize model response: {e}") from e


class LearningGenerator:
    """Turns a session summary into a LearningResponse."""

    def __init__(
        self,
        backend: str = "openai",
        model: str = "gpt-5-mini",
        api_key: str = "",
        base_url: Optional[str] = None,
        min_quiz_questions: int = 5,
        timeout: int = 300,
    ):
        self.backend = backend
        self.model = model
        self.api_key = api_key
        self.base_url = base_url
        self.min_quiz_questions = min_quiz_questions
        self.timeout = timeout
        self._client: Optional[OpenAI] = None

    @classmethod
    def from_config(cls, config: "AppConfig") -> "LearningGenerator":
        return cls(
            backend=config.generation_backend.value,
            model=config.openai_model.value,
            api_key=config.resolved_api_key(),
            base_url=config.openai_base_url,
            min_quiz_questions=config.min_quiz_questions,
        )

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            if not self.api_key:
                raise GenerationError("OpenAI API key not found. Set OPENAI_API_KEY or openai_api_key.")
            self._client = OpenAI(api_key=self.api_key, base_url=self.base_url)
        return self._client

    def generate(self, summary: str) -> LearningResponse:
        """Run one generation.

        Raises:
            GenerationError: On any backend or decoding failure
        """
        prompt = build_prompt(summary)
        logger.debug("Generating with %s backend (%d byte summary)", self.backend, len(summary))
        if self.backend == "openai":
            text = self._generate_openai(prompt)
        elif self.backend == "claude-code":
            text = self._generate_claude_code(prompt)
        else:
            raise GenerationError(f"Unknown generation backend: {self.backend}")
        response = parse_learning_response(text)
        logger.debug(
            "Generated %d group(s), %d question(s)",
            len(response.groups),
            response.total_questions,
        )
        return response

    def _generate_openai(self, prompt: str) -> str:
        try:
            completion = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt(self.min_quiz_questions)},
                    {"role": "user", "content": prompt},
                ],
                response_format={
                    "type": "json_schema",
                    "json_schema": {
                        "name": SCHEMA_NAME,
                        "schema": LEARNING_SCHEMA,
                        "strict": True,
                    },
                },
            )
        except OpenAIError as e:
            raise GenerationError(f"failed to invoke OpenAI chat completions API: {e}") from e

        if not completion.choices or not completion.choices[0].message.content:
            raise GenerationError("OpenAI response did not include assistant content")
        return completion.choices[0].message.content

    def _generate_claude_code(self, prompt: str) -> str:
        full_prompt = f"{system_prompt(self.min_quiz_questions)}\n\n{prompt}"
        try:
            return call_claude_code(full_prompt, timeout=self.timeout)
        except subprocess.TimeoutExpired as e:
            raise GenerationError(f"claude -p timed out after {self.timeout}s") from e
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or "").strip()
            raise GenerationError(f"claude -p exited with {e.returncode}: {stderr}") from e
        except OSError as e:
            raise GenerationError(f"failed to run claude CLI: {e}") from e


@dataclass(frozen=True)
class GenerationOutcome:
    """Terminal message from a background generation."""

    response: Optional[LearningResponse] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.response is not None


class GenerationTask:
    """Runs one generation at a time on a daemon thread.

    The worker posts exactly one outcome into a single-slot queue; the caller
    polls without blocking. There is no cancellation: an unwanted result is
    simply never polled.
    """

    def __init__(self, generator: LearningGenerator):
        self.generator = generator
        self._results: "queue.Queue[GenerationOutcome]" = queue.Queue(maxsize=1)
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None

    def start(self, summary: str) -> bool:
        """Spawn the worker. Returns False if a previous run is still outstanding."""
        if self._thread is not None:
            logger.debug("Generation already in progress; ignoring duplicate request")
            return False
        self._results = queue.Queue(maxsize=1)
        self._thread = threading.Thread(
            target=self._run, args=(summary, self._results), name="learnchain-generation", daemon=True
        )
        self._thread.start()
        return True

    def _run(self, summary: str, results: "queue.Queue[GenerationOutcome]") -> None:
        try:
            outcome = GenerationOutcome(response=self.generator.generate(summary))
        except GenerationError as e:
            logger.warning("Generation failed: %s", e)
            outcome = GenerationOutcome(error=str(e))
        except Exception as e:
            logger.warning("Generation failed unexpectedly: %s", e, exc_info=True)
            outcome = GenerationOutcome(error=str(e) or type(e).__name__)
        results.put(outcome)

    def poll(self) -> Optional[GenerationOutcome]:
        """Return the outcome once available, else None."""
        if self._thread is None:
            return None
        try:
            outcome = self._results.get_nowait()
        except queue.Empty:
            if self._thread.is_alive():
                return None
            # The worker may have posted between the check and is_alive()
            try:
                outcome = self._results.get_nowait()
            except queue.Empty:
                outcome = GenerationOutcome(error=DISCONNECTED_MESSAGE)
        self._thread = None
        return outcome


def learning_response_path(output_dir: Path, session_date: str) -> Path:
    """First free `learning-response-<date>[-N].json` path in `output_dir`."""
    path = output_dir / f"learning-response-{session_date}.json"
    suffix = 2
    while path.exists():
        path = output_dir / f"learning-response-{session_date}-{suffix}.json"
        suffix += 1
    return path


def write_learning_response(
    output_dir: Path, session_date: Optional[str], response: LearningResponse
) -> Path:
    """Write the response as pretty JSON without overwriting earlier runs.

    Raises:
        OSError: If the directory or file cannot be written
    """
    session_date = session_date or datetime.now().strftime("%Y-%m-%d")
    output_dir.mkdir(parents=True, exist_ok=True)
    path = learning_response_path(output_dir, session_date)
    path.write_text(json.dumps(response.to_wire(), indent=2, ensure_ascii=False), encoding="utf-8")
    logger.debug("Wrote learning response to %s", path)
    return path
