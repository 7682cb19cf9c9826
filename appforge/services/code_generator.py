"""
Code Generation Service - server side of POST /chat/code/{chat_id}

Flow:
1. Load the chat's persisted baseline (current project files)
2. Ask Claude for the files to create or replace, as JSON
3. Normalize the answer with the same rules the dispatcher applies
4. Persist baseline + incoming and return only the incoming files
"""

import json
import time
from typing import Any, AsyncGenerator, Dict, List, Optional

from appforge.core.config import settings
from appforge.core.logging_config import logger
from appforge.modules.codegen.prompts import (
    CODE_SYSTEM_PROMPT,
    EXPLANATION_SYSTEM_PROMPT,
    PROJECT_SYSTEM_PROMPT,
)
from appforge.services.file_merge import merge_file_sets
from appforge.services.file_set import FileSet
from appforge.services.project_store import ProjectStore
from appforge.services.response_normalizer import (
    NormalizedFiles,
    normalize_generation_payload,
    normalize_project_payload,
)
from appforge.utils.claude_client import TOKEN_USAGE_MARKER, ClaudeClient
from appforge.utils.response_parser import JSONResponseParser

# Upper bound on baseline text sent back to the model as context
CONTEXT_MAX_CHARS = 60000


def build_code_prompt(message: str, baseline: FileSet) -> str:
    """User request plus the current project files; files past the budget are listed by name only."""
    if not baseline:
        return f"The project is empty.\n\n## Request\n{message}"

    parts = ["## Current Project Files\n"]
    budget = CONTEXT_MAX_CHARS
    for path, code in baseline.items_ordered():
        block = f"### {path}\n```\n{code}\n```\n"
        if len(block) > budget:
            parts.append(f"### {path}\n(omitted, {len(code)} characters)\n")
            continue
        parts.append(block)
        budget -= len(block)

    parts.append(f"\n## Request\n{message}")
    return "\n".join(parts)


def find_unapproved_packages(file_set: FileSet, approved: Optional[List[str]] = None) -> List[str]:
    """Dependencies declared in /package.json that are not on the approved list."""
    approved = set(settings.APPROVED_PACKAGES if approved is None else approved)
    package_json = file_set.get("/package.json")
    if package_json is None:
        return []

    try:
        manifest = json.loads(package_json)
    except json.JSONDecodeError:
        logger.warning("[CodeGen] Generated /package.json is not valid JSON")
        return []
    if not isinstance(manifest, dict):
        return []

    unapproved = []
    for section in ("dependencies", "devDependencies"):
        declared = manifest.get(section)
        if isinstance(declared, dict):
            unapproved.extend(name for name in declared if name not in approved)
    return unapproved


class CodeGenerationService:
    """Claude-backed generation for chats and whole projects"""

    def __init__(self, store: ProjectStore, client: ClaudeClient):
        self.store = store
        self.client = client

    async def _generate_json(self, prompt: str, system_prompt: str) -> Dict[str, Any]:
        start_time = time.perf_counter()
        response = await self.client.generate(prompt=prompt, system_prompt=system_prompt)
        logger.log_performance("claude_generate", (time.perf_counter() - start_time) * 1000, threshold_ms=60000)
        return JSONResponseParser.extract_object(response["content"])

    async def generate_files(self, chat_id: str, message: str) -> NormalizedFiles:
        """
        Generate the files changed by ``message`` for a chat.

        Raises:
            AIServiceError: Claude request failed
            AIResponseParseError: no JSON object in the answer
            GenerationFailedError: JSON has no usable files
            StorageError: baseline could not be read or written
        """
        baseline = await self.store.load(chat_id)
        data = await self._generate_json(build_code_prompt(message, baseline), CODE_SYSTEM_PROMPT)
        normalized = normalize_generation_payload(data)

        if normalized.file_set:
            await self.store.save(chat_id, merge_file_sets(FileSet.empty(), baseline, normalized.file_set))

        logger.log_generation_event(
            chat_id,
            "generated",
            file_count=len(normalized.file_set),
            dropped=normalized.dropped_count,
        )
        return normalized

    async def generate_project(self, description: str) -> Dict[str, Any]:
        """Whole-project scaffold in the {files, generatedFiles} shape."""
        data = await self._generate_json(description, PROJECT_SYSTEM_PROMPT)
        normalized = normalize_project_payload(data)

        unapproved = find_unapproved_packages(normalized.file_set)
        if unapproved:
            logger.warning(f"[CodeGen] Generated project declares unapproved packages: {unapproved}")

        logger.info(f"[CodeGen] Generated project with {len(normalized.file_set)} files")
        return {
            "files": normalized.file_set.to_sandbox(),
            "generatedFiles": list(normalized.file_set),
            "unapprovedPackages": unapproved,
        }

    async def stream_explanation(self, message: str) -> AsyncGenerator[str, None]:
        """Explanation text chunks, without the trailing usage marker."""
        async for chunk in self.client.generate_stream(
            prompt=message,
            system_prompt=EXPLANATION_SYSTEM_PROMPT,
        ):
            if chunk.startswith(TOKEN_USAGE_MARKER):
                logger.debug(f"[CodeGen] Explanation usage: {chunk}")
                continue
            yield chunk
