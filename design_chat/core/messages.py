"""User-facing conversation copy"""

WELCOME_MESSAGES = [
    "Hello! Welcome to the Design UI/UX Chatbot. I'm here to help you with your design needs.",
    "What are you looking for today?",
]

REDESIGN_ACTION = "Webpage Redesign"
NEW_WEBSITE_ACTION = "New Webpage from Scratch"
QUICK_ACTIONS = [REDESIGN_ACTION, NEW_WEBSITE_ACTION]

INITIAL_CHOICE_HELP = (
    "I can help you with either a Webpage Redesign or creating a New Webpage from Scratch. "
    "Which one are you looking for?"
)
NEW_WEBSITE_INTRO = (
    "Excellent! Creating a new webpage from scratch is exciting. "
    "Let me ask you a few questions to understand your needs better."
)
REDESIGN_INTRO = (
    "Great! I'd be happy to help you with your webpage redesign. "
    "Let me ask you a few questions to understand your current webpage and what you're aiming for."
)

# Validation messages for empty responses
VALIDATION_MESSAGES = {
    "business": "Please tell me about your business. This information is important.",
    "audience": "Please describe your target audience. This helps us design better for your users.",
    "goals": "Please share your webpage goals. This helps us prioritize features and design elements.",
    "brand_details": (
        "Please share details about your brand guidelines. "
        "This information helps us design according to your brand identity."
    ),
    "redesign_current_url": (
        "I didn't detect a valid webpage URL. Please paste the full URL "
        "(e.g., https://example.com or example.com), or leave it blank if you don't have one."
    ),
    "redesign_issues": (
        "Please select at least one option that describes what is not working with your current webpage."
    ),
    "references_free_text": (
        "Please use the form below to add up to 3 reference websites with a short description, "
        "or choose \"I don't have any\"."
    ),
    "references_invalid": (
        "Each reference needs a valid public webpage URL (e.g., https://example.com) "
        "and a short description of what you'd like us to review."
    ),
    "references_too_many": "Please share at most {limit} reference websites.",
    "text_too_long": "That answer is a bit long. Please shorten it to {limit} characters or fewer.",
}

# Messages for "Other" input handling
OTHER_INPUT_MESSAGES = {
    "page_type": {
        "prompt": "Please tell me what type of page you want to create:",
        "again": (
            "I see you selected 'Other' again. Please type the actual page type you want to create "
            "(e.g., 'FAQ Page', 'Testimonials Page', etc.)."
        ),
        "empty": "Please tell me what type of page you want to create. I need this information to continue.",
    },
    "redesign_issues": {
        "prompt": "Please tell us what else is not working with your current webpage:",
        "again": "I see you selected 'Other' again. Please type what else is not working with your current webpage.",
        "empty": (
            "Please tell us what else is not working with your current webpage. "
            "I need this information to continue."
        ),
    },
}

FLOW_ERROR_MESSAGE = "I encountered an error. Please refresh the page and try again."
BUSY_MESSAGE = "I'm still working on your webpage. Please wait a moment."

# Generation
NO_URL_AUDIT_MESSAGE = (
    "No webpage URL was provided for analysis. You can still proceed to generate a redesigned webpage."
)
NO_URL_AUDIT_ISSUES = ["No URL provided for analysis."]
CONTINUE_ACTION = "Generate my redesign"
AUDIT_COMPLETE_MESSAGE = (
    "I've completed the UI/UX audit of your webpage. Here are the high-impact issues I identified:"
)
AUDIT_EMPTY_MESSAGE = (
    "I've completed the UI/UX audit of your webpage. The analysis didn't identify any critical issues, "
    "or the response format was unexpected."
)
NEW_WEBSITE_READY_MESSAGE = "Your webpage is ready! Here's a preview:"
REDESIGN_READY_MESSAGE = "Your redesigned webpage is ready! Here's a preview:"
GENERATION_OVERLOADED_MESSAGE = (
    "Our design servers are overloaded right now and I couldn't finish your webpage. "
    "Please leave your email and an engineer will follow up with your design."
)

# Session lifecycle
RATING_PROMPT = "Please rate this design from 1 to 5 (1 = needs work, 5 = love it)."
RATING_INVALID_MESSAGE = "Please choose a rating from 1 to 5."
FEEDBACK_PROMPT = "Thanks for the honesty! What didn't you like about the design?"
FEEDBACK_EMPTY_MESSAGE = "Please tell us what you didn't like so we can improve the design."
EMAIL_PROMPT_AFTER_RATING = "Great! Please share your email so we can connect you with an engineer."
EMAIL_PROMPT_AFTER_FEEDBACK = "Thanks for sharing. Please drop your email so an engineer can connect with you."
EMAIL_INVALID_MESSAGE = "That doesn't look like a valid email address. Please check it and try again."
SESSION_CLOSED_MESSAGE = "Thanks! An engineer will connect with you shortly. Closing the session now."
SESSION_LIMIT_MESSAGE = (
    "You've reached the maximum number of sessions ({limit}). Thank you for using our chatbot!"
)

DEFAULT_PLACEHOLDER = "Type your message..."
DEFAULT_PROGRESS_MESSAGE = "Working on it..."
SCREENSHOT_PROGRESS_MESSAGE = "Analyzing your page"

# Rotating loader copy per generation step
LOADER_MESSAGES = {
    "analyzing_references": [
        "Checking out your reference websites...",
        "Looking at your inspiration sites...",
        "Reviewing your reference examples...",
    ],
    "reviewing_page": [
        "Taking a closer look at your page...",
        "Reviewing your current design...",
        "Analyzing your webpage...",
    ],
    "generating_spec_new": [
        "Creating your webpage blueprint...",
        "Designing your page structure...",
        "Planning your website layout...",
    ],
    "generating_spec_redesign": [
        "Planning your redesign...",
        "Creating your redesign blueprint...",
        "Designing your improved layout...",
    ],
    "generating_html_new": [
        "Building your webpage...",
        "Putting your page together...",
        "Creating your website...",
    ],
    "generating_html_redesign": [
        "Building your redesigned page...",
        "Putting your improvements together...",
        "Creating your new design...",
    ],
    "processing_html": [
        "Finalizing your webpage...",
        "Polishing the details...",
        "Almost there...",
    ],
    "preparing_html": [
        "Getting ready to build...",
        "Preparing everything...",
        "Setting things up...",
    ],
}


def loader_message(loader_type: str, index: int = 0) -> str:
    """Pick a loader message by index, cycling through the messages for that type"""
    messages = LOADER_MESSAGES.get(loader_type)
    if not messages:
        return DEFAULT_PROGRESS_MESSAGE
    return messages[index % len(messages)]
