[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "wikigraph"
version = "0.1.0"
description = "Collect the most viewed Wikipedia articles and their links into MySQL, and browse them as an interactive graph."
requires-python = ">=3.10"
keywords = ["wikipedia", "graph", "visualization", "crawler", "mysql", "pageviews"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Environment :: X11 Applications",
    "Intended Audience :: End Users/Desktop",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Visualization",
    "Topic :: Database :: Front-Ends",
]
dependencies = [
    "requests",
    "pymysql",
    "pygame",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[project.scripts]
wikigraph-parser = "wikigraph.parser:main"
wikigraph-viewer = "wikigraph.viewer:main"

[tool.hatch.build.targets.wheel]
packages = ["wikigraph"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
ignore_missing_imports = true
