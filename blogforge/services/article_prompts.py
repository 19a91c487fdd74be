"""Prompt library for the blog generation pipeline.

Every article type (informational, commercial, howto) has its own research
focus, outline structure, intro template and title prompt. Voice rules
(formality, perspective) come from the brand's structured voice when one
is configured.

All builders are pure string functions so they can be unit tested without
a model.
"""

import json
from dataclasses import dataclass
from datetime import date
from typing import Any

from blogforge.schemas.brand import BrandDetails
from blogforge.schemas.outline import OutlineSection
from blogforge.schemas.research import CompetitorData
from blogforge.utils.dates import current_date_context

DEFAULT_ARTICLE_TYPE = "informational"


@dataclass(frozen=True)
class ArticleStrategy:
    research_focus: str
    outline_instruction: str
    title_prompt: str


# =============================================================================
# ARTICLE TYPE STRATEGIES
# =============================================================================

ARTICLE_STRATEGIES: dict[str, ArticleStrategy] = {
    "informational": ArticleStrategy(
        research_focus="""
**ARTICLE TYPE: INFORMATIONAL / DEEP DIVE**

RESEARCH FOCUS:
- Focus on Definitions, History, Core Concepts, and "Why" it matters.
- Extract expert quotes, statistics, academic context, and authoritative sources.
- Look for common misconceptions to address.
- Find real-world use cases and examples.
- Do NOT focus heavily on pricing or product specs unless directly relevant to understanding the concept.

DATA EXTRACTION PRIORITY:
1. Core definitions and explanations
2. Historical context and evolution
3. Key statistics and facts
4. Expert opinions and quotes
5. Related concepts and how they connect
""",
        outline_instruction="""
**STRUCTURE FOR INFORMATIONAL ARTICLE:**
- **Definition/Introduction:** Clear explanation of what it is
- **Context/History:** Background, evolution, why it exists
- **Core Concepts:** Main ideas broken into digestible sections (2-4 H2s)
- **Advanced Angles:** Deeper insights, edge cases, nuances
- **Practical Applications:** Real-world use cases
- **FAQ:** Address common questions and misconceptions

GOAL: Total topical authority. Reader should not need another article.

INSTRUCTION NOTES GUIDANCE:
- Ask writer to explain complex terms simply (ELI5 technique)
- Include analogies and real-world examples
- Focus on the "why" behind concepts, not just the "what"
""",
        title_prompt="""Generate 5 SEO-optimized blog titles for an Informational article about '{keyword}'.

TITLE RULES (MANDATORY):
1. Include '{keyword}' or very close variant in the title
2. NO colons, semicolons, parentheses, or single quotes
3. Keep under 60 characters
4. Front-load the keyword when possible
5. Write as a single flowing sentence

GOOD EXAMPLES:
- "How to Restore Old Photos with AI in 2024"
- "What Is AI Photo Restoration and How It Works"
- "AI Photo Restoration Explained for Beginners"
- "Complete Guide to AI Photo Restoration"

BAD EXAMPLES (DO NOT USE):
- "Restoration Magic: How AI Brings Photos Back" (colon)
- "Is AI Photo Restoration Worth It? (Tested)" (parentheses)
- "The 'Secret' to Perfect Photo Restoration" (single quotes)
- "Here's Why AI Photo Restoration Changes Everything" (clickbait)
""",
    ),
    "commercial": ArticleStrategy(
        research_focus="""
**ARTICLE TYPE: COMMERCIAL / COMPARISON**

RESEARCH FOCUS:
- **CRITICAL:** Extract a "Product Matrix" for the top 3-7 products/tools mentioned.
- For EACH product, find: Exact Price (or pricing tiers), Top 3 Pros, Top 3 Cons, Unique Selling Point, Target Audience.
- Ignore generic definitions. Focus on **Differences** between options and **Verdicts**.
- Look for user reviews, Reddit discussions, and real user experiences.
- Find pricing pages, feature comparison tables, and changelog for recent updates.

DATA EXTRACTION PRIORITY:
1. Product names and exact pricing
2. Feature lists and limitations
3. Pros and cons from real users
4. Who each product is best for
5. Recent updates or changes (shows freshness)
6. Discount codes or deals if available

MANDATORY: If you cannot find exact pricing, note it in sources_summary but attempt to find tier names (e.g., "Free, Pro, Enterprise").
""",
        outline_instruction="""
**STRUCTURE FOR COMMERCIAL/COMPARISON ARTICLE:**
- **Buying Criteria:** What to look for (3-5 key factors explained)
- **Quick Summary Table:** Comparison matrix with product, price, best for
- **Deep Dive Reviews:** Individual sections for each product (Product 1, Product 2, etc.)
  - Each review: Overview, Key Features, Pricing, Pros, Cons, Best For
- **Head-to-Head Comparison:** Direct comparison on key features
- **Final Verdict:** Opinionated recommendation with context
- **FAQ:** Address common buying questions

MANDATORY SECTIONS:
- You MUST create a "Best for X" section (e.g., "Best for Beginners", "Best for Enterprise")
- You MUST include a comparison table in some form

INSTRUCTION NOTES GUIDANCE:
- Instruct writer to be opinionated - reviewers have opinions!
- Use the "Reviewer" persona - write like someone who has tested all options
- Compare tools AGAINST each other, not in isolation
- Include specific examples: "ShipFast's auth setup takes 10 minutes vs Supastarter's 30 minutes"
""",
        title_prompt="""Generate 5 SEO-optimized blog titles for a Comparison/Review article about '{keyword}'.

TITLE RULES (MANDATORY):
1. Include '{keyword}' or very close variant in the title
2. NO colons, semicolons, parentheses, or single quotes
3. Keep under 60 characters
4. Numbers work well for listicles when relevant
5. Write as a single flowing sentence

GOOD EXAMPLES:
- "Best Free AI Photo Restoration Tools in 2024"
- "7 AI Photo Restoration Apps Compared and Reviewed"
- "Top AI Tools for Old Photo Restoration"
- "AI Photo Restoration Tools Worth Trying in 2024"

BAD EXAMPLES (DO NOT USE):
- "AI Tools Tested: Here's The Winner" (colon)
- "The Best AI Tool (And It's Not What You Think)" (parentheses)
- "I Tested 7 Tools. Here's The Only One Worth It" (overly clickbait)
- "Tool A vs Tool B: One Clear Winner" (colon)
""",
    ),
    "howto": ArticleStrategy(
        research_focus="""
**ARTICLE TYPE: HOW-TO / TUTORIAL**

RESEARCH FOCUS:
- Extract the **Exact Step Sequence** - the precise order of operations.
- Identify **Prerequisites** - what is needed before starting (tools, accounts, knowledge).
- Find common **Pitfalls/Errors** users face during this process and how to fix them.
- Look for specific commands, code snippets, or UI paths.
- Find alternative methods if they exist.

DATA EXTRACTION PRIORITY:
1. Prerequisites and requirements
2. Step-by-step sequence with exact actions
3. Common errors and troubleshooting tips
4. Time estimates for each step or total process
5. Tools, dependencies, or accounts needed
6. Screenshots or diagrams descriptions

NOTE: Tutorials should be completable. If research shows missing steps, flag it in content_gap.
""",
        outline_instruction="""
**STRUCTURE FOR HOW-TO/TUTORIAL ARTICLE:**
- **Prerequisites/Tools Needed:** What reader needs before starting
- **Brief Overview:** What we're building/achieving (with outcome preview)
- **Step 1, Step 2, Step 3, etc.:** Chronological steps (each as H2)
  - Each step: Clear action, expected result, screenshot opportunities
- **Troubleshooting:** Common errors and fixes
- **Final Result/Verification:** How to confirm success
- **Next Steps:** Optional advanced tips or related tutorials

FLOW: Chronological order is NON-NEGOTIABLE. Steps must follow logical sequence.

INSTRUCTION NOTES GUIDANCE:
- Instruct writer to use bolding for UI elements (e.g., **Click Save**)
- Ask for "Pro Tips" or warnings in every step to prevent errors
- Include what the reader should SEE after each step (verification)
- Keep steps atomic - one action per step when possible
""",
        title_prompt="""Generate 5 SEO-optimized blog titles for a How-To/Tutorial article about '{keyword}'.

TITLE RULES (MANDATORY):
1. Start with "How to" when the keyword allows it
2. Include '{keyword}' or very close variant in the title
3. NO colons, semicolons, parentheses, or single quotes
4. Keep under 60 characters
5. Promise a clear outcome in the title

GOOD EXAMPLES:
- "How to Remove Scratches from Old Photos Using AI"
- "How to Colorize Black and White Photos with AI"
- "Step by Step Guide to AI Photo Restoration"
- "How to Restore Faded Color Photos at Home"

BAD EXAMPLES (DO NOT USE):
- "Fix Photos: A Complete Guide" (colon)
- "Restore Photos (The Easy Way)" (parentheses)
- "The Method Nobody Teaches You" (clickbait, no keyword)
- "Deploy in 5 Minutes (No BS Guide)" (parentheses)
""",
    ),
}

INTRO_TEMPLATES: dict[str, str] = {
    "informational": """
GOAL: Hook the reader with curiosity and establish you as the expert who will explain this clearly.

APPROACH OPTIONS (vary these, don't always use the same one):
A) **Open with a surprising fact or statistic** - "Did you know that 70% of developers have never actually used X correctly?"
B) **Challenge a common misconception** - "Most people think X is about Y. They're wrong."
C) **Start with a relatable scenario** - "You've seen the term everywhere. Your team keeps mentioning it. But what does X actually mean?"
D) **Lead with the "why it matters" angle** - "Understanding X isn't just academic. It directly impacts your ability to..."

STRUCTURE:
1. Hook with curiosity or a knowledge gap the reader didn't know they had.
2. Briefly acknowledge why this topic is confusing or misunderstood.
3. Promise clarity: "By the end of this guide, you'll understand exactly..."
4. Keep it SHORT. 2-3 paragraphs max.
""",
    "commercial": """
GOAL: Hook the reader by acknowledging the overwhelming pain of choosing, then promise clarity.

APPROACH OPTIONS (vary these, don't always use the same one):
A) **Start with the paradox of choice** - "There are now 50+ tools claiming to solve X. How do you actually pick the right one?"
B) **Acknowledge wasted time/money** - "You've probably tried 3 tools already. None of them quite fit."
C) **Lead with the stakes** - "Pick the wrong X and you'll waste months of migration effort."
D) **Use the 'honest review' angle** - "After testing 15 different options, here's what actually works."

STRUCTURE:
1. Acknowledge the reader's decision fatigue or frustration with existing options.
2. Position yourself as someone who did the hard work of comparison.
3. Promise a clear recommendation or framework for choosing.
4. Keep it SHORT. 2-3 paragraphs max. Don't list all the tools yet, save that for the body.
""",
    "howto": """
GOAL: Promise a specific outcome and reduce the reader's fear of complexity.

APPROACH OPTIONS (vary these, don't always use the same one):
A) **Lead with the end result** - "By the end of this tutorial, you'll have a fully working X deployed to production."
B) **Acknowledge the perceived difficulty** - "Setting up X sounds intimidating. It's actually straightforward when you know the steps."
C) **Use a time anchor** - "In the next 15 minutes, you'll go from zero to a working implementation."
D) **Start with 'no prerequisites' or 'beginner-friendly'** - "You don't need to be an expert. If you can copy-paste, you can do this."

STRUCTURE:
1. State what the reader will accomplish by the end (specific, tangible outcome).
2. Reassure them: it's simpler than they think, or explain minimal prerequisites.
3. Briefly mention what tools/setup they'll need (if any).
4. Keep it SHORT. 2-3 paragraphs max. Jump into the steps quickly.
""",
}

# Opening hook rules layered on top of every intro template
HOOK_RULES = """
HOOK RULES:
1. Acknowledge the reader's frustration with the problem behind the keyword.
2. Mirror their experience so they recognise themselves.
3. Name the excuse they tell themselves for not solving it yet.
4. Promise a simple, specific fix.
"""

AUTHENTIC_WRITING_RULES = """
### CORE FORMATTING & STYLE (STRICT ENFORCEMENT)

**SCANNABILITY & STRUCTURE:**
1. Assume readers will NOT read full paragraphs. The core message must be understandable at a glance.
2. **BOLD** the single most important takeaway in each paragraph. Use bullet points to break up concepts.
3. Keep paragraphs under 3 sentences. One idea per paragraph.
4. Every line must EARN its place. If a sentence doesn't serve a critical purpose, DELETE IT.

**SENTENCE VARIATION (BURSTINESS) - CRITICAL FOR HUMAN FEEL:**
5. Mix sentence lengths dramatically: some very short (3-5 words), some longer (15-25 words).
6. Start sentences with DIFFERENT elements: questions, statements, "But...", numbers, actions.
7. Example rhythm: "Stop. Think about what just happened. Now consider how this changes everything you thought you knew about the topic."
8. Occasional sentence fragments are OK if they add punch. "Not always. But often."

**ACTIVE VOICE & DIRECTNESS:**
9. USE ACTIVE VOICE. "Management canceled the meeting" NOT "The meeting was canceled by management."
10. Be direct. "Call me at 3pm." NOT "I was wondering if you might be available for a call."
11. Use certainty when you ARE certain. "This approach improves results." NOT "This approach might improve results."

**NO AI-FILLER PHRASES (CRITICAL):**
12. **BANNED STARTERS:** "Let's dive in", "Let's be honest", "here's the truth", "Let's explore", "In today's digital age", "You know that gut-wrenching feeling", "In this article we will", "It goes without saying", "As we navigate"
13. **BANNED PHRASES:** "cutting-edge", "leverage", "streamline", "take your X to the next level", "unparalleled", "revolutionize"
14. **BANNED WORDS:** "delve", "unleash", "landscape", "tapestry", "game-changer", "realm", "bustling", "elevate", "harness", "robust"
15. Instead of: "Let's explore this fascinating opportunity" say: "Here's what we know."

**SPECIFICITY & AUTHENTICITY:**
16. Use SPECIFIC, CONCRETE details. "Saves 2 hours per week" NOT "saves time."
17. Avoid generic statements. "The project failed because the API timed out" NOT "The project had issues."
18. If something has problems, SAY IT. "This approach has problems." Be real.

**STRUCTURAL PATTERN DISRUPTION:**
19. Don't always follow intro, body, conclusion. Sometimes start mid-thought.
20. Include natural digressions if they add value. "(Worth noting: this also works for X.)"
21. Use varied paragraph lengths. Some can be one sentence. Others 3.

**PERSPECTIVE REMINDER:**
22. **AUTHENTIC PERSPECTIVE:** Write with authority. Avoid passive voice ("It is said that..."). Use the perspective (I/We/Brand) defined in the Narrative Rules.
"""

# =============================================================================
# VOICE DEFINITIONS
# =============================================================================

FORMALITY_DEFINITIONS: dict[str, str] = {
    "casual": """
**CASUAL TONE RULES:**
- Use contractions freely (you're, it's, don't, can't)
- Short, punchy sentences. One idea per line.
- Rhetorical questions to engage the reader
- Okay to use: "honestly", "basically", "here's the thing"
- Conversational transitions: "So,", "Now,", "Look,"
- Avoid: Corporate jargon, passive voice, long complex sentences
- Example: "Here's the thing. Most people overthink this."
- Example: "Honestly? This tool just works."
""",
    "professional": """
**PROFESSIONAL TONE RULES:**
- Use contractions sparingly and naturally (it's, don't are fine; ain't is not)
- Clear, direct sentences. No fluff or filler words.
- Active voice. Subject-verb-object structure.
- Data and evidence over opinions
- Confident but not arrogant
- Avoid: Slang, overly casual phrases, emojis, exclamation marks
- Avoid: "sexy", "game-changer", "unlock", "leverage", "synergy"
- Example: "The data shows a 40% improvement in conversion rates."
- Example: "This approach reduces deployment time by half."
""",
    "formal": """
**FORMAL TONE RULES:**
- No contractions (do not, it is, cannot, will not)
- Complete, structured sentences with proper grammar
- Third-person perspective preferred
- Use industry-standard terminology precisely
- Measured, objective statements
- Avoid: Colloquialisms, first-person pronouns, rhetorical questions
- Avoid: Casual expressions, humor, informal transitions
- Example: "This analysis demonstrates the efficacy of the proposed solution."
- Example: "The organization has implemented measures to ensure compliance."
""",
    "academic": """
**ACADEMIC TONE RULES:**
- No contractions. Precise, technical vocabulary.
- Passive voice acceptable for objectivity ("It was observed that...")
- Cite evidence, research, and authoritative sources
- Hedge statements appropriately ("suggests", "indicates", "may")
- Avoid absolute claims without evidence
- Avoid: Absolutes, subjective claims, informal language, personal anecdotes
- Example: "The findings suggest a significant correlation between X and Y."
- Example: "Previous research indicates that this approach may yield improved outcomes."
""",
}

PERSPECTIVE_DEFINITIONS: dict[str, str] = {
    "first-person": """
**PERSPECTIVE: FIRST-PERSON (I)**
- Write as an individual expert sharing personal experiences
- Use "I" for opinions and experiences: "I recommend...", "I've tested...", "In my experience..."
- Share personal anecdotes and lessons learned when relevant
- Be opinionated but always back it up with facts or reasoning
- Okay to admit uncertainty: "I'm not 100% sure, but..."
- Creates intimacy and trust with the reader
""",
    "third-person": """
**PERSPECTIVE: THIRD-PERSON (Objective Observer)**
- Never use "I" or "We" pronouns
- Write as an objective, external observer
- Use "users", "developers", "companies", "teams" as subjects
- Present information as facts, not personal opinions
- Example: "Developers often find that..." NOT "I find that..."
- Example: "Users report improved performance..." NOT "We've seen..."
- Creates authority and objectivity
""",
    "brand-we": """
**PERSPECTIVE: BRAND-WE (Company/Team Voice)**
- Use "We" to represent the company, team, or brand
- Never use "I" (you are not speaking as an individual)
- Use phrases like: "Our team", "We recommend", "Our solution", "We've built"
- When discussing your own product: "We designed X to...", "Our tool handles..."
- When discussing competitors: Be fair and factual, but highlight your strengths
- Creates sense of team/community behind the content
""",
    "neutral": """
**PERSPECTIVE: NEUTRAL (Minimal Pronouns)**
- Minimize personal pronouns entirely
- Focus on the subject matter, not the narrator
- Use passive voice or imperative mood
- Example: "This guide covers..." NOT "I'll show you..."
- Example: "Consider using..." NOT "We recommend..."
- Example: "The tool provides..." NOT "Our tool provides..."
- Creates maximum objectivity and focus on content
""",
}


def get_article_strategy(article_type: str | None) -> ArticleStrategy:
    return ARTICLE_STRATEGIES.get(article_type or "", ARTICLE_STRATEGIES[DEFAULT_ARTICLE_TYPE])


def get_intro_template(article_type: str | None) -> str:
    return INTRO_TEMPLATES.get(article_type or "", INTRO_TEMPLATES[DEFAULT_ARTICLE_TYPE])


def get_formality_definition(formality: str | None) -> str:
    return FORMALITY_DEFINITIONS.get(formality or "", FORMALITY_DEFINITIONS["professional"])


def get_perspective_definition(perspective: str | None) -> str:
    return PERSPECTIVE_DEFINITIONS.get(perspective or "", PERSPECTIVE_DEFINITIONS["neutral"])


def _brand_json(brand: BrandDetails) -> str:
    return json.dumps(brand.model_dump(by_alias=True, exclude={"voice"}))


# =============================================================================
# PIPELINE PROMPTS
# =============================================================================


def build_research_query(keyword: str, supporting_keywords: list[str]) -> str:
    """Search query: the keyword plus at most two supporting keywords."""
    if not supporting_keywords:
        return keyword
    return f"{keyword} {' '.join(supporting_keywords[:2])}"


def build_research_prompt(
    keyword: str,
    article_type: str,
    search_results: list[dict[str, Any]],
    supporting_keywords: list[str] | None = None,
    cluster: str | None = None,
    today: date | None = None,
) -> str:
    strategy = get_article_strategy(article_type)
    supporting_keywords = supporting_keywords or []

    additional_context = ""
    if supporting_keywords or cluster:
        additional_context = f"""

ADDITIONAL SEO CONTEXT:
- Main Keyword: "{keyword}"
- Supporting Keywords: {', '.join(supporting_keywords) or 'none'}
- Topic Cluster: {cluster or 'General'}
"""

    return f"""{current_date_context(today)}

You are an expert SEO Strategist and Data Analyst.
I will provide you with the raw text content of the Top 5 Google Search results for a specific keyword.

YOUR GOAL:
Analyze this data to create a "Research Brief" that allows us to write a better article than all of them combined.

**ARTICLE TYPE: {article_type.upper()}**

{strategy.research_focus}

DATA CLEANING RULES:
1. The input contains raw web scrapes. Ignore UI elements like "Login", "Sign Up", "Footer", "Cookie Policy", "Alt tags".
2. Focus ONLY on the educational content, tutorials, and facts.

OUTPUT REQUIREMENTS (Return strict JSON):
1. "fact_sheet": Extract hard facts, statistics, dates, and specific steps that are mentioned across multiple sources. (e.g., "70% of users prefer X").
2. "content_gap": Identify what is MISSING.
   - Are the articles outdated?
   - Do they lack specific code examples?
   - Do they fail to answer a specific "why"?
   - Is the tone too robotic?
   - Note: If one source has a Transcript (like a YouTube video), extract unique tips from it that text blogs missed.
3. "product_matrix": (ONLY for commercial/comparison articles) Extract product details for each product/tool mentioned:
   - name, price (or "Unknown" if not found), pros (array), cons (array), unique_selling_point, best_for
4. "step_sequence": (ONLY for how-to/tutorial articles) Extract the step-by-step sequence:
   - step (number), title, details, pro_tip (optional)
5. "prerequisites": (ONLY for how-to/tutorial articles) What the reader needs before starting.

JSON SCHEMA:
{{
  "fact_sheet": string[],
  "content_gap": {{
    "missing_topics": string[],
    "outdated_info": string,
    "user_intent_gaps": string[]
  }},
  "sources_summary": {{ url: string, title: string }}[],
  "product_matrix": [{{ name: string, price: string, pros: string[], cons: string[], unique_selling_point: string, best_for: string }}],
  "step_sequence": [{{ step: number, title: string, details: string, pro_tip?: string }}],
  "prerequisites": string[]
}}{additional_context}

INPUT DATA (Search Results for "{keyword}"):
{json.dumps(search_results)}
"""


def build_outline_prompt(
    keyword: str,
    competitor_data: CompetitorData,
    article_type: str,
    brand: BrandDetails | None = None,
    title: str | None = None,
) -> str:
    strategy = get_article_strategy(article_type)
    brand_line = f"3. BRAND DETAILS: {_brand_json(brand)}" if brand else ""
    title_instruction = (
        f'Use the provided title: "{title}".'
        if title
        else "Generate a catchy H1 based on the Keyword and Content Gap."
    )

    return f"""
You are an expert Content Architect.
Your goal is to outline a high-ranking blog post that beats the competition by filling their "Content Gaps".

**ARTICLE TYPE: {article_type.upper()}**

INPUT CONTEXT:
1. KEYWORD: "{keyword}"
2. COMPETITOR & GAP DATA: {competitor_data.model_dump_json()}
{brand_line}

TYPE-SPECIFIC STRATEGY:
{strategy.outline_instruction}

INSTRUCTIONS:
1. **Title:** {title_instruction}
2. **Intro/Hook:** Plan a strong introduction.
   - Do NOT list this in the "sections" array.
   - It needs to hook the reader immediately.
3. **Structure (H2/H3):** Create a logical flow FOLLOWING the TYPE-SPECIFIC STRATEGY above.
   - **MANDATORY:** You MUST create specific sections that address the "missing_topics" identified in the Competitor Data.
   - **USER INTENT:** Ensure the structure answers the specific questions users are asking.
4. **Instruction Notes (CRITICAL):**
   - For EACH section, write a "Content Focus" note.
   - **Tell the writer WHAT data points, facts, or specific "Gap" concepts to cover.**
   - **DO NOT** write style instructions (e.g., "Use bullets", "Be professional"). The writer already knows the style. Only focus on the **Substance**.
   - Example GOOD Note: "Explain the pricing tier differences. Mention that the Pro plan is required for API access (Gap found in research)."
   - Example BAD Note: "Write this section using bullet points and a professional tone."

OUTPUT SCHEMA (Return strict JSON):
{{
  "title": string,
  "intro": {{
    "instruction_note": string,
    "keywords_to_include": string[]
  }},
  "sections": [
    {{
      "id": number (1-based index),
      "heading": string,
      "level": number (2 for H2, 3 for H3, 4 for H4),
      "instruction_note": string,
      "keywords_to_include": string[]
    }}
  ]
}}
"""


def build_writing_system_prompt(
    style_dna: str,
    fact_sheet: list[str],
    brand: BrandDetails | None = None,
) -> str:
    voice_rules = ""
    brand_context = ""
    if brand is not None:
        if brand.voice is not None:
            voice_rules = (
                get_formality_definition(brand.voice.formality)
                + get_perspective_definition(brand.voice.perspective)
            )
        brand_context = f"""
### 5. BRAND CONTEXT
- We are writing as: {brand.product_name}.
- Audience: {brand.audience.model_dump_json()}

**Note:** When discussing {brand.product_name} (your product), describe it in first-person plural
("We built {brand.product_name} to...", "Our tool handles..."). NEVER write "I tested {brand.product_name}".
"""

    return f"""
You are an expert Blog Writer. You are NOT an AI assistant. You are a subject matter expert.

### 1. WRITING STYLE & VOICE (FOLLOW THESE INSTRUCTIONS PRECISELY)
{style_dna}
{voice_rules}
### 2. STRATEGY & MINDSET
- **Goal:** Rank #1 on Google by being more specific, helpful, and "human" than the competition.
- **Mindset:** The user is frustrated and wants a quick answer. Do not fluff. Get to the point.

### 3. GOLDEN RULES (THE LAW)
{AUTHENTIC_WRITING_RULES}
{brand_context}
### 4. KNOWLEDGE BASE (Facts to use)
{json.dumps(fact_sheet)}

### 6. OUTPUT FORMAT
Return **Markdown** formatted text.
- Make use of proper H2, H3, and H4 headers for SEO appropriately.
- Do NOT include the main Section Heading (system adds it).
- Start directly with the body content.
"""


def build_section_prompt(
    draft_so_far: str,
    heading: str,
    instruction_note: str,
    keywords: list[str],
) -> str:
    return f"""
### CONTEXT (What you have written so far)
{draft_so_far}

### YOUR CURRENT TASK
**Write Section:** "{heading}"

**CONTENT FOCUS (What to cover):**
{instruction_note}

**SEO KEYWORDS:** {', '.join(keywords)}

### INSTRUCTIONS
1. Read the last sentence of the Context. Ensure your first sentence flows naturally from it.
2. **Apply the Golden Rules:** BOLD the key takeaways. Keep sentences short.
3. **Simulate Experience:** If the content note asks for a review / opinion, write confidently as if you have tested it.
"""


def build_intro_prompt(draft_so_far: str, instruction_note: str, keywords: list[str], article_type: str) -> str:
    note = (
        f"{instruction_note}\n\n"
        "IMPORTANT: Write the introduction/hook only. Do NOT add any headings. "
        "Start directly with the text.\n\n"
        f"APPLY THESE INTRO RULES:\n{get_intro_template(article_type)}{HOOK_RULES}"
    )
    return build_section_prompt(draft_so_far, "Introduction / Hook", note, keywords)


def build_section_instruction(section: OutlineSection) -> str:
    note = section.instruction_note
    if section.external_link is not None:
        note += (
            f"\n\nLink to {section.external_link.url} when discussing: "
            f"{section.external_link.anchor_context}"
        )
    return note


def build_polish_prompt(draft: str, brand: BrandDetails | None = None) -> str:
    if brand is not None and brand.voice is not None:
        tone = brand.voice.tone
        structure = brand.voice.sentence_structure.avg_length
        rules = "\n".join(f"- {rule}" for rule in brand.voice.narrative_rules)
    else:
        tone = brand.effective_style_dna if brand is not None else "Professional and direct"
        structure = "varied"
        rules = ""
    rules = rules or "- Follow brand guidelines."

    brand_check = ""
    if brand is not None:
        name = brand.product_name
        brand_check = f"""
### 5. BRAND PERSPECTIVE CHECK (CRITICAL)
You MUST fix any "cringe" self-reviews.
- **When discussing Competitors:** It is OK to say "I tested X".
- **When discussing {name} (Our Product):**
  - **BAD:** "I tested {name} and it was fast." (Sounds fake/cringe).
  - **GOOD:** "We built {name} to be fast." or "Our tool excels at..."
  - **FIX:** Change any "I tested [Our Product]" to "We designed [Our Product]" or "Our tool".
"""

    return f"""
You are a Ruthless Direct-Response Copyeditor.
Your goal is to maximize **Readability** and **Emotional Impact**.
You hate "Walls of Text" and "AI Cliches".

### 1. THE DRAFT TO EDIT
{draft}

### 2. STRICT FORMATTING RULES (The Law)
1. **DESTROY WALLS OF TEXT:** If a paragraph has more than 3 sentences, BREAK IT.
2. **ONE IDEA PER LINE:** Use single-sentence paragraphs frequently to create rhythm.
3. **SCANNABILITY:** Ensure key takeaways are **bolded**.
4. **NO "GLUE" WORDS:** Remove fluff transitions like "In conclusion," "Furthermore," "It is important to note." Just say what you mean.

### 3. BANNED "AI" PHRASES (Instant Deletion)
If you see these patterns or anything from this vibe, rewrite the sentence immediately:
- "That's where [X] comes in..."
- "Whether you are [X] or [Y]..."
- "In this digital landscape..."
- "Unlock / Unleash / Elevate..."
- "It sounds counterintuitive, but..."
- "Let's dive in..."
- "Magic happens..." / "Game-changer..."

### 4. THE VOICE (Do NOT Violate)
- Tone: {tone}
- Sentence Structure: {structure}
- **CRITICAL:** Do NOT make it sound generic or "AI-generated". Preserve the unique flair, idioms, and formatting quirks.
- **Perspective & Rules:**
{rules}
- **Vibe:** Write like a human talking to a friend. Be punchy. Be specific.
{brand_check}
### 6. OUTPUT
Return the polished content in **Raw Markdown**. Do NOT use code blocks.
"""


def build_meta_description_prompt(title: str, keyword: str) -> str:
    return f"""You are an expert SEO Specialist.
Your task is to generate a compelling, natural Meta Description for a blog post.

INPUT:
Title: {title}
Keyword: {keyword}

REQUIREMENTS:
- Under 160 characters.
- Compelling, click-worthy, and includes the target keyword naturally.
- Direct and to the point.
- No emojis, no special characters (: ; *) and no hashtags.

OUTPUT SCHEMA (JSON):
{{
  "meta_description": string
}}
"""


def fallback_meta_description(title: str, keyword: str) -> str:
    return f"Read our guide on {title}. Learn about {keyword} and more."


def build_image_prompt_request(title: str, headings: list[str], image_style: str) -> str:
    return f"""You are an expert AI Art Director.
Your task is to generate a detailed, creative prompt for an AI image generator to create a featured image for a blog post.

INPUT:
Title: {title}
Outline Summary: {', '.join(headings)}
Style: {image_style}

REQUIREMENTS:
- The image should be relevant to the topic but abstract enough to be a background or hero image.
- PRIORITIZE LESS TEXT on the image itself (or no text).
- Make it visually appealing and suitable for a blog header.
- If style is 'stock', go for high-quality realistic photography or clean vector art.
- Otherwise use the artistic style the brand names, with vibrant colors and cultural elements where they fit.
- Output ONLY the prompt string. No JSON.
"""


def build_title_prompt(
    keyword: str,
    article_type: str = DEFAULT_ARTICLE_TYPE,
    brand: BrandDetails | None = None,
) -> str:
    """Title-suggestion prompt for one keyword, optionally brand-aware."""
    prompt = get_article_strategy(article_type).title_prompt.replace("{keyword}", keyword)
    if brand is not None:
        prompt += f"\nBRAND DETAILS (match this audience and intent): {_brand_json(brand)}\n"
    prompt += """
ALSO AVOID: "Unleash", "Unlock", "Elevate", "Mastering", "Ultimate Guide to", "Symphony", "Tapestry".

OUTPUT REQUIREMENTS (Return strict JSON):
{
  "titles": string[]
}
"""
    return prompt
