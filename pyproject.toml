[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "hlnode"
version = "0.1.0"
description = "HyperEVM node helpers: chain specs, canonical head selection, the mainnet BLOCKHASH rule, JSON-RPC forwarding and hl-node compatible responses"
requires-python = ">=3.10"
keywords = ["hyperevm", "evm", "json-rpc", "blockchain", "node", "rpc-forwarding"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP",
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = [
    "httpx>=0.24",
    "pycryptodome>=3.15",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "pytest-asyncio>=0.21",
    "respx>=0.20",
]

[tool.hatch.build.targets.wheel]
packages = ["hlnode"]

[tool.hatch.build.targets.sdist]
include = ["hlnode", "tests", "README.md", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
