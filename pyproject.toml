[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "layerflow"
version = "0.1.0"
description = "Layered (Sugiyama-style) layout of directed graphs: cycle breaking, layering, ordering, positioning and edge routing"
requires-python = ">=3.10"
dependencies = []
keywords = ["graph", "layout", "sugiyama", "network-simplex", "brandes-koepf", "diagram"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Visualization",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["layerflow"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
