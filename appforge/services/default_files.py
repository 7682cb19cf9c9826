"""
Default boilerplate files for the sandbox.

These give the preview a minimally runnable React project before any
generation happens. The set is built once at startup and handed to the
merge engine; nothing writes to it afterwards.

Used by:
- FileSetMergeEngine (bottom merge layer)
- SandboxProjection export/deploy (defaults ship with every project)
"""

from pathlib import Path
from typing import Dict, Optional

from appforge.core.logging_config import logger
from appforge.services.file_set import FileSet, normalize_path


REACT_DEFAULT_FILES: Dict[str, str] = {
    "/public/index.html": """<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="UTF-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1.0" />
    <title>Document</title>
    <script src="https://cdn.tailwindcss.com"></script>
  </head>
  <body>
    <div id="root"></div>
  </body>
</html>
""",

    "/App.css": """@tailwind base;
@tailwind components;
@tailwind utilities;
""",

    "/tailwind.config.js": """/** @type {import('tailwindcss').Config} */
export default {
  content: [
    "./index.html",
    "./**/*.{js,jsx}",
  ],
  theme: {
    extend: {},
  },
  plugins: [],
}
""",

    "/postcss.config.js": """export default {
  plugins: {
    tailwindcss: {},
    autoprefixer: {},
  },
}
""",
}


def load_default_files(directory: Optional[str] = None) -> FileSet:
    """
    Build the defaults FileSet.

    With a directory, every text file beneath it becomes a default keyed by
    its path relative to that directory; otherwise the built-in React
    boilerplate is used.
    """
    if not directory:
        return FileSet(REACT_DEFAULT_FILES)

    root = Path(directory)
    if not root.is_dir():
        logger.warning(f"[Defaults] DEFAULT_FILES_DIR {root} does not exist, using built-in boilerplate")
        return FileSet(REACT_DEFAULT_FILES)

    files: Dict[str, str] = {}
    for file_path in sorted(root.rglob("*")):
        if not file_path.is_file():
            continue
        path = normalize_path(file_path.relative_to(root).as_posix())
        try:
            files[path] = file_path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            logger.warning(f"[Defaults] Skipping non-UTF-8 default file {file_path}")

    logger.info(f"[Defaults] Loaded {len(files)} default files from {root}")
    return FileSet(files)
