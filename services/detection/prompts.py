"""Prompt helpers for model-backed disease detection."""

from __future__ import annotations

from typing import Iterable


def detection_system_prompt() -> str:
	"""Return the plant pathologist system prompt."""
	return (
		"You are an experienced plant pathologist specialised in banana crops. "
		"Inspect the leaf photograph and name the most likely disease from the allowed list. "
		"Be conservative with confidence when symptoms are faint or the image is unclear."
	)


def detection_user_prompt(labels: Iterable[str]) -> str:
	"""Return the user prompt listing the diseases the model may choose from."""
	allowed = "\n".join(f"- {label}" for label in labels)
	return (
		f"Allowed diseases:\n{allowed}\n\n"
		"Classify the incoming image into exactly one of the allowed diseases, give a confidence between 0 and 1, "
		"and write a one-sentence description of the visible symptoms."
	)
