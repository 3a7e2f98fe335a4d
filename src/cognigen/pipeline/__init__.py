"""Generation orchestration pipeline.

Stages, in order: request normalizer and cache, specification analyzer,
architecture enhancer, component synthesizer, validator/scorer and learning
feedback recorder. :class:`cognigen.pipeline.engine.GenerationEngine` wires
them together.
"""
