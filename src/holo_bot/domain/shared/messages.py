"""Centralized message constants for error messages, log templates, and user feedback."""

from __future__ import annotations


class ErrorMessages:
    """Error messages for exceptions and validation failures."""

    # Discord ID Validation Errors
    INVALID_SNOWFLAKE = "Discord snowflake ID must be positive"
    SNOWFLAKE_TOO_LARGE = "Discord snowflake ID exceeds maximum value (2^64)"

    # Queue Errors
    QUEUE_TERMINATED = "The music queue for guild {guild_id} has already shut down"
    QUEUE_REQUEST_DROPPED = "The music queue stopped before answering the request"
    TRACK_RESOLUTION_FAILED = "Failed to resolve track '{source}': {reason}"
    PLAYLIST_RESOLUTION_FAILED = "Failed to resolve playlist '{source}': {reason}"
    PLAYLIST_ENTRY_UNAVAILABLE = "Playlist entry #{index} is unavailable: {reason}"
    TRACK_TOO_LONG = "'{title}' is {length} long, tracks may be at most {limit}"
    TRACK_STATE_INVALID = "Cannot {operation} a track that has already finished"
    TRACK_STATE_CHANGE_FINISHED = "Attempted to change state of a stopped or ended track!"
    VOLUME_CHANGE_FAILED = "Failed to set volume: {error}"
    NOTHING_PLAYING = "Nothing is playing"
    PLAYLIST_ENTRIES_FAILED = "Stopped reading playlist entries: {reason}"
    NO_STREAM_URL = "No stream URL found for '{title}'"

    # Settings Errors
    INVALID_LOG_LEVEL = "Invalid log level: {level}. Must be one of {valid_levels}"

    # Authentication/Security Errors
    DISCORD_TOKEN_REQUIRED = "DISCORD_TOKEN environment variable is required"
    BOT_NOT_INITIALIZED = "Bot not initialized. Call set_bot() first."


class LogTemplates:
    """Log message templates for structured logging.

    Use these with logger.info(), logger.error(), etc. and pass values as parameters
    for proper log formatting and structured logging support.
    """

    # Bot Lifecycle
    BOT_STARTING = "Starting HoloBot in {environment} mode"
    BOT_STARTING_RUN = "Starting bot..."
    BOT_STOPPED = "Bot stopped"
    BOT_KEYBOARD_INTERRUPT = "Received keyboard interrupt, shutting down"
    BOT_FATAL_ERROR = "Fatal error: %s"
    CONFIG_INVALID = "Invalid configuration:\n%s"
    CONFIG_CHECKED = "Configuration OK: %s mode, up to %d buffered tracks per guild"
    BOT_SETUP = "Setting up bot..."
    BOT_SETUP_COMPLETE = "Bot setup complete"
    BOT_READY = "Logged in as %s (ID: %s)"
    BOT_CONNECTED_GUILDS = "Connected to %d guilds"
    BOT_COG_LOADED = "Loaded cog: %s"
    BOT_COG_LOAD_FAILED = "Failed to load cog %s: %s"
    BOT_SHUTTING_DOWN = "Shutting down bot..."
    BOT_SHUTDOWN_COMPLETE = "Bot shutdown complete"
    BOT_SHUTDOWN_TIMEOUT = "Graceful shutdown timed out after %.1fs"
    BOT_MUSIC_SHUTDOWN_ERROR = "Error while shutting down music queues: %s"
    BOT_SLASH_COMMAND_ERROR = "Slash command error in /%s: %s"
    BOT_ERROR_MESSAGE_SEND_FAILED = "Failed to send error message to user"
    BOT_SYNCED_GUILD = "Synced %d commands to guild %s"
    BOT_SYNC_GUILD_FAILED = "Failed to sync commands to guild %s: %s"
    BOT_SYNCED_GLOBAL = "Synced %d commands globally"
    BOT_SYNC_GLOBAL_FAILED = "Failed to sync commands globally: %s"
    BOT_SYNC_ON_STARTUP_FAILED = "Command sync on startup failed: %s"

    # Voice Operations
    VOICE_CONNECTED = "Connected to voice channel %s in %s"
    VOICE_DISCONNECTED = "Disconnected from voice in guild %s"
    VOICE_CONNECTION_TIMEOUT = "Timeout connecting to channel %s"
    VOICE_NO_PERMISSION = "No permission to connect to channel %s"
    VOICE_CLIENT_ERROR = "Client error connecting: %r"
    VOICE_LEAVE_FAILED = "Failed to leave voice channel in guild %s: %s"
    VOICE_BOT_DISCONNECTED = "Bot was disconnected from voice in guild %s, deregistering queue"

    # Playback Operations
    PLAYBACK_STARTED = "Started playing '%s' in guild %s"
    PLAYBACK_ERROR = "Playback error in guild %s: %s"
    PLAYBACK_FAILED_START = "Failed to start playback: %s"
    PLAYBACK_LOOP_RESTART = "Looping '%s' in guild %s"
    PLAYBACK_SUSPENDED = "Released the source of '%s' in guild %s at %.1fs"
    PLAYBACK_RESTORED = "Restoring '%s' in guild %s from %.1fs"
    PLAYBACK_SUSPEND_FAILED = "Failed to suspend '%s': %s"
    TRACK_ENDED = "Track ended in guild %s (error=%s)"
    TRACK_END_HANDLER_ERROR = "Track end handler failed for '%s': %s"
    FFMPEG_SOURCE_CLEANUP_ERROR = "Error cleaning up FFmpeg source: %s"

    # Queue Lifecycle
    QUEUE_STARTED = "Music queue started for guild %s"
    QUEUE_TERMINATED = "Music queue terminated for guild %s"
    QUEUE_UPDATE_RECEIVED = "Received update %s in guild %s"
    QUEUE_UPDATE_FAILED = "Failed to handle %s in guild %s: %s"
    QUEUE_TRACK_ENDED_ERROR = "Track ended error in guild %s: %s"
    QUEUE_TRACK_BUFFERED = "Buffered '%s' at position %d in guild %s"
    QUEUE_TRACK_BACKLOGGED = "Deferred '%s' to remainder (%d waiting) in guild %s"
    QUEUE_TRACK_DROPPED = "Dropped '%s' in guild %s: %s"
    QUEUE_PLAYLIST_START = "Processing playlist '%s' (%d entries) in guild %s"
    QUEUE_PLAYLIST_ENTRY_FAILED = "Skipping playlist entry #%d in guild %s: %s"
    QUEUE_PLAYLIST_END = "Finished playlist in guild %s: %d buffered, %d deferred, %d failed"
    QUEUE_VOLUME_SET_FAILED = "Failed to set volume on '%s' in guild %s: %s"
    QUEUE_STOP_FAILED = "Failed to stop '%s' after an error in guild %s: %s"
    QUEUE_LATE_UPDATE = "Dropping %s for guild %s: queue already terminated"
    QUEUE_TRACK_ENDED_AFTER_CLOSE = "Track ended after queue shutdown in guild %s"
    QUEUE_LISTENER_JOINED = "Listener %s joined the voice channel in guild %s"
    QUEUE_LISTENER_LEFT = "Listener %s left the voice channel in guild %s"
    QUEUE_LISTENER_UNKNOWN = "Unknown user %s left the voice channel in guild %s"
    QUEUE_LISTENER_UPDATE_DROPPED = "Queue for guild %s closed before a listener update for %s"

    # Event Broadcast
    EVENT_NO_SUBSCRIBERS = "No subscribers for %s, not sending"
    EVENT_SUBSCRIBER_LAGGED = "Subscriber lagged behind, dropped %s"

    # Registry
    MUSIC_GUILD_REGISTERED = "Registered music queue for guild %s"
    MUSIC_GUILD_ALREADY_REGISTERED = "Guild %s already has a music queue registered"
    MUSIC_GUILD_DEREGISTERED = "Deregistered music queue for guild %s"
    MUSIC_GUILD_NOT_REGISTERED = "Attempted to deregister guild %s that wasn't registered!"
    MUSIC_SHUTDOWN = "Shutting down %d music queue(s)"

    # yt-dlp
    YTDLP_FAILED_EXTRACT_INFO = "Failed to extract info for %s"
    YTDLP_FAILED_EXTRACT_PLAYLIST = "Failed to extract playlist %s"
    YTDLP_FAILED_METADATA = "Failed to fetch metadata for %s: %s"
    YTDLP_NO_STREAM_URL = "No stream URL found for %s"
    CACHE_HIT_URL = "Cache hit for URL: %s"
    CACHE_EXPIRED_CLEANED = "Cleaned %d expired cache entries"

    # Notifier
    NOTIFIER_STARTED = "Queue notifier started for guild %s in channel %s"
    NOTIFIER_SEND_FAILED = "Failed to send queue notification in guild %s: %s"
    NOTIFIER_EDIT_FAILED = "Failed to edit playlist progress in guild %s: %s"


class DiscordUIMessages:
    """User-facing Discord messages and responses.

    These strings are shown directly to users in Discord interactions.
    Keep them concise, friendly, and include appropriate emoji.
    """

    # Success Messages
    SUCCESS_JOINED = "👋 Joined **{channel}**. Queue updates will be posted in this channel."
    SUCCESS_LEFT = "👋 Left the voice channel."
    SUCCESS_REQUEST_QUEUED = "🔍 Looking up **{query}**..."
    SUCCESS_PLAYLIST_QUEUED = "🔍 Processing playlist **{query}**..."

    # Queue Events
    EVENT_TRACK_ENQUEUED = "🎵 Queued **{title}** [{length}], plays in about {wait}."
    EVENT_TRACK_ENQUEUED_BACKLOG = "📥 Queued `{source}` behind the current buffer."
    EVENT_TRACK_ENQUEUED_TOP = "⏫ **{title}** will play next."
    EVENT_PLAYING_NOW = "▶️ Now playing **{title}**."
    EVENT_QUEUE_ERROR = "❌ {reason}"
    EVENT_TERMINATED = "⏹️ Music queue stopped."
    EVENT_PLAYLIST_TITLE = "📋 {title}"
    EVENT_PLAYLIST_PROCESSING = "Processing {processed}/{total} tracks..."
    EVENT_PLAYLIST_DONE = "✅ Queued {processed} tracks."

    # Action Messages
    ACTION_SKIPPED = "⏭️ Skipped {count} track(s)."
    ACTION_QUEUE_CLEARED = "🗑️ Cleared {count} track(s) from the queue."
    ACTION_TRACKS_REMOVED = "🗑️ Removed {count} track(s)."
    ACTION_DUPLICATES_REMOVED = "🗑️ Removed {count} duplicate track(s)."
    ACTION_USER_PURGED = "🗑️ Removed {count} track(s) added by <@{user_id}>."
    ACTION_SHUFFLED = "🔀 Shuffled the queue."
    ACTION_PAUSED = "⏸️ Paused playback."
    ACTION_RESUMED = "▶️ Resumed playback."
    ACTION_STARTED_LOOPING = "🔁 Looping the current track."
    ACTION_STOPPED_LOOPING = "➡️ Stopped looping the current track."
    ACTION_STATE_ALREADY_SET = "Playback is already in that state."
    ACTION_VOLUME_CHANGED = "🔊 Volume set to {volume}%."

    # Error Messages
    ERROR_OCCURRED = "❌ An error occurred: {error}"
    ERROR_COULD_NOT_JOIN_VOICE = "I couldn't join your voice channel."
    ERROR_INVALID_INDICES = "❌ Could not parse `{value}` as a list of positions."
    ERROR_QUEUE_TERMINATED = "❌ The music queue has stopped. Use `/music join` again."

    # State Messages
    STATE_NOTHING_PLAYING = "Nothing is playing."
    STATE_QUEUE_EMPTY = "Queue is empty."
    STATE_NOT_IN_VOICE_QUEUE = "I'm not in a voice channel. Use `/music join` first."
    STATE_ALREADY_JOINED = "I'm already in a voice channel in this server."
    STATE_NEED_TO_BE_IN_VOICE = "You need to be in a voice channel first."
    STATE_MUST_BE_IN_VOICE = "You need to be in my voice channel to control the queue."
    STATE_SERVER_ONLY = "This command can only be used in a server."
    STATE_VERIFY_VOICE_FAILED = "Could not verify your voice state."

    # Embed Titles
    EMBED_NOW_PLAYING = "🎵 Now Playing"
    EMBED_QUEUE = "📋 Queue ({total_tracks} tracks) — Page {page}/{total_pages}"
