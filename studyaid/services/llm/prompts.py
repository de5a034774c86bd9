from __future__ import annotations

TOPICS_PROMPT_TEMPLATE = """Extract 2-3 key research topics from the provided notes. Return only the topics, one per line.

Notes: {content}"""

EXTRACT_TEXT_PROMPT = (
    "Extract all text from this image. Please return only the extracted text content, "
    "maintaining the original formatting and structure as much as possible. "
    "If there are multiple sections, separate them clearly. "
    'If no text is found, return "No text detected in the image."'
)

NO_TEXT_SENTINEL = "No text detected in the image."

STUDY_MATERIALS_PROMPT = """You are an expert educator creating comprehensive study materials. Analyze the provided text notes and any images to create:
1. A clear, structured summary (include information from both text and images)
2. Key points (5-8 bullet points covering content from both sources)
3. Flashcards (8-12 cards with front/back, incorporating visual and text content)
4. Q&A pairs (6-10 questions with detailed answers based on all provided content)

Format your response as JSON with this structure:
{{
  "summary": "detailed summary text",
  "keyPoints": ["point 1", "point 2", ...],
  "flashcards": [{{"front": "question", "back": "answer"}}, ...],
  "qa": [{{"question": "question text", "answer": "detailed answer"}}, ...]
}}

Make the content educational, engaging, and comprehensive. If images are provided, analyze them and incorporate their content into the study materials.

{notes_block}{research_block}"""

NOTES_BLOCK_TEMPLATE = "Original Notes:\n{content}"
IMAGES_ONLY_BLOCK = "No text notes provided - analyze the images only."
RESEARCH_BLOCK_TEMPLATE = "\n\nAdditional Research Context:{context}"

QUIZ_PROMPT_TEMPLATE = """You are a quiz generator. Create exactly 10 multiple choice questions with 4 options each (A, B, C, D).
Each question should be challenging but fair, and cover different aspects of the topic.

Format your response as a JSON object with this exact structure:
{{
  "questions": [
    {{
      "question_text": "The question text here?",
      "option_a": "First option",
      "option_b": "Second option",
      "option_c": "Third option",
      "option_d": "Fourth option",
      "correct_answer": "A"
    }}
  ]
}}

Make sure:
- Exactly 10 questions
- correct_answer is always one of: A, B, C, or D
- Questions are varied and comprehensive
- All options are plausible but only one is correct

Create a quiz about: {topic}"""
