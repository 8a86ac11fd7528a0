"""Prompt templates for Gemini."""

MODULES_PROMPT = """
You are an expert instructional designer creating course modules for a corporate learning management system.

CONTEXT:
- Course Type: {course_type}
- Target Role: {target_role}
- Difficulty Level: {difficulty_level}

USER REQUEST: {prompt}

TASK: Generate a well-structured curriculum of 4-8 progressive course modules.

For each module provide:
1. module_name: a clear, professional title
2. module_description: 3-4 sentences on the concepts covered, how the module builds on earlier ones and its practical value
3. content_type: one of "video", "text", "pdf", "external_link", "mixed_content"
4. estimated_duration_minutes: a realistic estimate between 15 and 180
5. learning_objectives: 3-4 measurable outcomes using action verbs
6. suggested_activities: 2-3 practical activities

Respond ONLY with a JSON array:
[
  {{
    "module_name": "Module title",
    "module_description": "Detailed description.",
    "content_type": "video",
    "estimated_duration_minutes": 90,
    "learning_objectives": ["Apply ...", "Analyze ..."],
    "suggested_activities": ["Case study ...", "Knowledge check ..."]
  }}
]
"""

ASSESSMENT_PROMPT = """
You are an expert assessment designer writing a multiple-choice quiz for corporate training.

Difficulty Level: {difficulty_level}

TOPIC: {prompt}

Write exactly {question_count} questions covering the key concepts. Each question has 4 options
with exactly one correct answer, given as the zero-based index of the correct option.

Respond ONLY with a JSON array:
[
  {{
    "question_text": "Clear question?",
    "options": ["Option A", "Option B", "Option C", "Option D"],
    "correct_answer": 0,
    "points": 1,
    "explanation": "Why the correct option is right."
  }}
]
"""
