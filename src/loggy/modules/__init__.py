"""Parser and processor modules, their factory and registry."""
from .base import Fields, Module, ModuleOptions, Parser, ParserOptions, ProcessParams, Processor, ProcessorOptions

__all__ = [
    "Fields",
    "Module",
    "ModuleOptions",
    "Parser",
    "ParserOptions",
    "ProcessParams",
    "Processor",
    "ProcessorOptions",
]
