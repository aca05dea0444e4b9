"""
Review prompt template.

The prompt asks the model to return the input text as HTML with every
finding wrapped in a coloured <span> whose title holds the comment.
"""

# Category -> (colour name, hex value). Order is the order shown to the model.
ANNOTATION_COLORS = [
    ('incorrect form or grammar', 'Dark Blue', '#00008B'),
    ('typographical errors', 'Dark Red', '#8B0000'),
    ('ambiguous or unclear phrases', 'Purple', '#800080'),
    ('places where additional clarity could be beneficial', 'Dark Green', '#006400'),
    ('imprecise or ineffective word choice', 'Saddle Brown', '#8B4513'),
    ('statements whose accuracy is questionable', 'Dark Goldenrod', '#B8860B'),
]

INPUT_OUTPUT_EXAMPLE = """\
If the original sentence is:
  The quick brown fox jumps over the lazzy dog. It's an old sentence used for demonstrating all alphabets. However it's not much usefull outside that.

Your HTML annotated sentence should look like:
  <p>The quick brown fox jumps over the <span style="background-color: #8B0000" title="Typographical error. The correct spelling is 'lazy'.">lazzy</span> dog. <span style="background-color: #800080" title="Ambiguous pronoun reference. Consider revising to 'This is an old sentence...'">It's</span> an old sentence used for demonstrating all <span style="background-color: #006400" title="Consider revising for clarity. Perhaps 'all the letters of the alphabet' would work better.">alphabets</span>. However <span style="background-color: #00008B" title="Missing comma after the introductory word 'However'.">it's</span> not much <span style="background-color: #8B0000" title="Typographical error. The correct spelling is 'useful'.">usefull</span> outside that.</p>"""

TASK_DESCRIPTION = """\
As an advanced AI language model, your task is to perform a detailed review of the provided text. Your feedback should be interwoven directly into the original text using HTML '<span>' tags for annotations. Your comments should appear when hovering over the highlighted sections. Here's how to do it: wrap the section you are referring to in '<span style="background-color: color" title="Your comment here">highlighted text</span>'.

Remember: Do NOT use <!-- --> comments, as they will not be visible when hovering over the text.

In your review, please focus on these aspects:

1. **Grammar:** Correct any grammatical errors such as incorrect verb tenses, misplaced punctuation, sentence fragments, etc.
2. **Typos:** Fix any spelling mistakes or typographical errors you find.
3. **Completeness of Information:** Assess whether the text provides a full understanding of the topic being discussed. Suggest where more details or explanations could be added.
4. **Word Choice:** Check if the chosen words, phrases, and expressions are clear, precise, and effective.
5. **Accuracy:** Point out statements that look factually wrong or misleading."""


def _color_legend() -> str:
    lines = ['Colors:']
    for category, name, value in ANNOTATION_COLORS:
        lines.append(f"    {name} ({value}) is used for {category}.")
    return '\n'.join(lines)


def build_review_prompt(input_text: str) -> str:
    """
    Build the review instruction for one piece of text.

    The result depends only on input_text, which is appended verbatim as
    the final part of the prompt. Length limits are the caller's job.
    """
    return (
        f"{TASK_DESCRIPTION}\n\n"
        f"{_color_legend()}\n\n"
        "Here's a clear example of what you should do:\n\n"
        f"{INPUT_OUTPUT_EXAMPLE}\n\n"
        "Your goal is to help improve the overall quality and clarity of the text.\n\n"
        "Input text:\n"
        f"{input_text}"
    )
