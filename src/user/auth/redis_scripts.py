"""
Redis Lua scripts for login throttling.

Scripts run atomically on the server, so concurrent failures for the same
account never lose an increment or reset the window.
"""

# Count one failed login. The window is fixed: its TTL is set by the first
# failure and is not extended by later ones. A key left without a TTL (e.g. by
# a crash between INCR and EXPIRE in an older client) gets one here.
REGISTER_LOGIN_FAILURE_SCRIPT = """
local key = KEYS[1]
local window_seconds = tonumber(ARGV[1])

local attempts = redis.call('INCR', key)
if attempts == 1 or redis.call('TTL', key) < 0 then
    redis.call('EXPIRE', key, window_seconds)
end

return attempts
"""
