"""Prompt templates for study-item generation."""

SYSTEM_PROMPT = """You are an expert educational content creator and learning specialist. Analyze the provided \
content and produce accurate, pedagogically sound study materials.

Cover a range of cognitive levels:
- Knowledge/Recall: basic facts and definitions
- Comprehension: understanding and explanation
- Application: using concepts in new situations
- Analysis: breaking down complex ideas
- Synthesis: combining ideas creatively
- Evaluation: making judgments and critiques

Respond with a single JSON object with exactly this structure:
{
  "flashcards": [
    {"front": "Clear, specific question or prompt", "back": "Comprehensive answer with examples",
     "difficulty": "easy|medium|hard", "category": "concept|definition|application|analysis"}
  ],
  "multipleChoice": [
    {"question": "Question testing understanding", "options": ["A", "B", "C", "D"], "correctAnswer": 0,
     "explanation": "Why this answer is correct", "difficulty": "easy|medium|hard"}
  ],
  "openEnded": [
    {"question": "Question requiring analysis", "sampleAnswer": "Example of a good response",
     "rubric": "Key points that should be addressed", "difficulty": "easy|medium|hard"}
  ],
  "summaries": [
    {"title": "Key concept or section title", "content": "Concise summary of main points",
     "keyTerms": ["term1", "term2"]}
  ]
}"""

USER_PROMPT_TEMPLATE = """Topic: {topic_name}

Content to analyze:
{content}

Generate study materials based on this content:
- 12-15 flashcards covering key concepts (mix of difficulties)
- 8-10 multiple choice questions (testing different cognitive levels)
- 3-5 open-ended questions for deeper analysis
- 2-3 summary sections organizing the main ideas

Use clear, unambiguous language with progressive difficulty, and base everything directly on the provided material."""


def build_user_prompt(topic_name: str, content: str) -> str:
    return USER_PROMPT_TEMPLATE.format(topic_name=topic_name, content=content)
