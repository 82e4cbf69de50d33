"""
utils/constants.py

Purpose: Centralized static content

- All user-facing messages
- Button labels and postback payloads
- Reusable constants

(Prevents hardcoding across the codebase)
"""

SUPPORT_EMAIL = "riakmawut3@gmail.com"

# Messenger limits
MESSENGER_TEXT_LIMIT = 2000
MAX_BUTTONS = 3
BUTTON_TITLE_LIMIT = 20

# ============================================================
# POSTBACK PAYLOADS
# ============================================================

PAYLOAD_GET_STARTED = "GET_STARTED"
PAYLOAD_I_AGREE = "I_AGREE"
PAYLOAD_SUBSCRIBE_WEEKLY = "SUBSCRIBE_WEEKLY"
PAYLOAD_SUBSCRIBE_MONTHLY = "SUBSCRIBE_MONTHLY"
PAYLOAD_RETRY_NUMBER = "RETRY_NUMBER"

# ============================================================
# WELCOME & ONBOARDING
# ============================================================

WELCOME_MESSAGE = """👋 Welcome to Answer Bot AI!

Your trusted educational assistant powered by advanced AI - designed for South Sudanese learners and professionals.

📚 What I Can Help With

Instant answers in:
• Academics (science, math, literature)
• Business (startups, finance, marketing)
• Agriculture (crop advice, livestock)
• Health (wellness, nutrition)
• General knowledge (current events, local info)

🆓 Free Trial & Premium Access

NEW USER BONUS: {trial_limit} free messages today!

Premium Benefits (After trial):
• {subscription_limit} messages/day
• Priority responses
• Extended topic coverage

Subscription Plans:
Weekly: {weekly_price} {currency} ({subscription_limit} messages/day)
Monthly: {monthly_price} {currency} ({subscription_limit} messages/day)

Payment via MTN MoMo - no banking details stored

🔒 Your Privacy & Data Security

• Safe storage: Data stays in secure, monitored cloud servers.
• No selling data: We never share with advertisers or third parties.
• Quick help: Send HELP for support or privacy info.
• Stay safe tip: Never share personal, financial, or sensitive health details in chat.

⚖ Terms of Use
By continuing, you confirm that you:

✅ Use the service for personal or educational purposes only.
✅ Understand AI answers are informational only and not professional advice.
🚫 Will not send illegal, harmful, abusive, or threatening content.
🚫 Will not send spam, marketing, or sales messages.
💳 Agree subscription fees are non-refundable once access is granted.
📱 Consent to provide your phone number only for registration, anti-duplication, and payment verification purposes.

📋 Important Links
Privacy Policy: https://nyamora-digital-gateway.web.app/privacy
Terms of Service: https://nyamora-digital-gateway.web.app/terms
Data Deletion Guide: https://nyamora-digital-gateway.web.app/data-deletion"""

CONSENT_PROMPT = (
    "🟢 By clicking \"I Agree\", you confirm that you've read and accepted "
    "our Terms, Privacy Policy, and Subscription Conditions."
)

CONSENT_REMINDER = (
    "Please accept our terms first by tapping \"I Agree\" below. "
    "Type \"help\" to see what I can do."
)

CONSENT_ACCEPTED_MESSAGE = """Thank you for accepting our terms and conditions.

To continue, please enter your own MTN mobile number (e.g., 092xxxxxxx).

Providing your number helps us verify your eligibility for the free trial and ensures the security of your account."""

ALREADY_CONSENTED_MESSAGE = (
    "You've already accepted our terms. Ask me anything, or type \"help\" to see available commands."
)

BUTTON_I_AGREE = "I Agree"

# ============================================================
# PHONE COLLECTION
# ============================================================

INVALID_NUMBER_MESSAGE = (
    "Sorry, that doesn't look like a valid MTN South Sudan number. "
    "Please enter a number starting with 092 (e.g., 092xxxxxxx)."
)

TRIAL_NUMBER_TAKEN_MESSAGE = """⚠️ This MTN number has already been used for a free trial.

Please try a different number or subscribe to unlock full access."""

CHOOSE_OPTION_PROMPT = "Choose an option to continue:"

TRIAL_STARTED_MESSAGE = """✅ Your number has been registered. You can now use your daily free trial of {trial_limit} messages.

Try asking me anything!"""

PAYMENT_NUMBER_PROMPT = (
    "To continue, please enter your MTN mobile number (e.g., 092xxxxxxx) "
    "for payment processing."
)

RETRY_NUMBER_MESSAGE = """Please enter a different MTN mobile number (e.g., 092xxxxxxx).

Make sure this number hasn't been used for a trial before."""

RETRY_NUMBER_UNAVAILABLE = (
    "There's no number to change right now. Type \"status\" to see where you are."
)

BUTTON_TRY_DIFFERENT_NUMBER = "Try Different Number"

# ============================================================
# SUBSCRIPTION & PAYMENT
# ============================================================

SUBSCRIPTION_OFFER_MESSAGE = """To continue using Answer Bot AI, please choose a subscription plan:

- {weekly_price} {currency} Weekly: {subscription_limit} messages/day, standard features
- {monthly_price} {currency} Monthly: {subscription_limit} messages/day, extended features & priority service"""

SELECT_PLAN_PROMPT = "Select your preferred plan:"

PLAN_REQUIRED_MESSAGE = "Please choose a plan before entering your payment number."

TRIAL_LIMIT_REACHED_MESSAGE = "🛑 You've reached your daily free trial limit. Subscribe for premium access!"

DAILY_LIMIT_REACHED_MESSAGE = "You've reached your daily message limit. Try again tomorrow!"

SUBSCRIPTION_EXPIRED_MESSAGE = "Your subscription has expired. Please renew to continue using the service."

PAYMENT_PROCESSING_MESSAGE = """⏳ Your payment is being processed.

Please check your phone for a payment prompt. Complete the transaction within {timeout_minutes} minutes.

Type "cancel" to cancel this payment."""

PAYMENT_INITIATION_FAILED_MESSAGE = (
    "Sorry, there was an error processing your payment request. Please try again in a moment."
)

PAYMENT_ALREADY_PENDING_MESSAGE = (
    "You already have a payment in progress. Please complete it on your phone "
    "or type \"cancel\" to cancel it."
)

AWAITING_PAYMENT_MESSAGE = (
    "Please complete your payment to continue, or type \"cancel\" to cancel it."
)

PAYMENT_SUCCESS_MESSAGE = """🎉 Payment successful! Your subscription is now active.

📦 Plan: {plan_name}
💰 Price: {price} {currency}
💬 Daily limit: {subscription_limit} messages/day
📅 Expires: {expiry}

Enjoy using Answer Bot AI!"""

PAYMENT_FAILED_MESSAGE = (
    "❌ Payment failed. You can continue using your trial messages or try subscribing again later."
)

PAYMENT_FAILED_REASON_LINE = "\n\nReason: {reason}"

PAYMENT_TIMEOUT_MESSAGE = (
    "⌛ Your payment request timed out. You can continue using your trial "
    "messages or try subscribing again."
)

BUTTON_WEEKLY_PLAN = "Weekly {price} {currency}"
BUTTON_MONTHLY_PLAN = "Monthly {price} {currency}"

# ============================================================
# COMMANDS
# ============================================================

CANCEL_PAYMENT_MESSAGE = (
    "✅ Payment cancelled. You can continue using your trial messages or try subscribing again later."
)

CANCEL_REGISTRATION_MESSAGE = (
    "✅ Phone registration cancelled. You can start over by sending \"start\"."
)

NOTHING_TO_CANCEL_MESSAGE = (
    "There's nothing to cancel right now. You can use \"help\" to see available commands."
)

RESET_MESSAGE = """✅ Your daily usage has been reset!

You can now use your messages again:
• Trial users: {trial_limit} messages per day
• Subscribers: {subscription_limit} messages per day"""

COMMAND_FAILED_MESSAGE = "Sorry, there was an error processing your command. Please try again."

HELP_MESSAGE = """🤖 Answer Bot AI - Help & Support Guide

📚 How to Use Answer Bot AI:
• Ask Any Question: type your question and get an AI-powered answer
• Academics, business, health, agriculture and general knowledge

🆓 Free Trial & Subscription:
• Free Trial: {trial_limit} messages per day
• Premium Access: {subscription_limit} messages per day
• Weekly Plan: {weekly_price} {currency}
• Monthly Plan: {monthly_price} {currency}

⚠️ Important Information:
• Subscription payments are non-refundable once access is granted
• Message limits reset at midnight ({timezone} time)

🛠 Available Commands:
• start - Restart the bot and begin fresh
• cancel - Cancel current operation (payment, registration)
• status - Show your plan and today's usage
• resetme - Reset today's message counters
• help - Show this help guide

📧 Support: {support_email}"""

STATUS_HEADER = """📊 Your Status:

📋 Stage: {stage}
📱 Mobile: {mobile}
📅 Current Time: {now}"""

STATUS_TRIAL_SECTION = """🆓 Trial Status:
• Messages used today: {used}/{limit}
• Trial used: {trial_used}"""

STATUS_SUBSCRIPTION_SECTION = """💳 Subscription Status:
• Plan: {plan}
• Status: {status}
• Messages used today: {used}/{limit}"""

STATUS_EXPIRY_LINE = "• Expires: {expiry}"

# ============================================================
# CHAT
# ============================================================

AI_APOLOGY_MESSAGE = (
    "I apologize, but I'm having trouble processing your request right now. "
    "Please try again in a moment."
)

MESSAGE_TOO_LONG = (
    "Your message is too long. Please keep questions under {max_length} characters."
)

GENERIC_ERROR_MESSAGE = "❌ Something went wrong. Please try again in a moment."
