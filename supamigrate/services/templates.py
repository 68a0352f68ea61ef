"""Jinja2 templates for generated Edge Functions and their trigger scripts."""

from jinja2 import Environment, StrictUndefined

_env = Environment(
    keep_trailing_newline=True,
    trim_blocks=True,
    lstrip_blocks=True,
    undefined=StrictUndefined,
)


def render(template_str: str, **context) -> str:
    """Render a template string with the shared environment."""
    return _env.from_string(template_str).render(**context)


# ---------------------------------------------------------------------------
# Shared fragments
# ---------------------------------------------------------------------------
IMPORTS = """\
import { serve } from "https://deno.land/std@0.168.0/http/server.ts"
import { createClient } from 'supabase'
"""

CORS = """\
const corsHeaders = {
  'Access-Control-Allow-Origin': '*',
  'Access-Control-Allow-Headers': 'authorization, x-client-info, apikey, content-type',
}
"""

CLIENT = """\
    const supabaseClient = createClient(
      Deno.env.get('SUPABASE_URL')!,
      Deno.env.get('SUPABASE_SERVICE_ROLE_KEY')!
    )
"""

NOTES = """\
/* Migration Notes:
 * - Original trigger kind: {{ trigger_kind }}
{% if source_file %}
 * - Source file: {{ source_file }}
{% endif %}
{% for note in notes %}
 * - {{ note }}
{% endfor %}
{% if needs_review %}
 * - Search for MIGRATION_REVIEW markers before deploying
{% endif %}
 */
"""


# ---------------------------------------------------------------------------
# Edge Function templates
# ---------------------------------------------------------------------------
HTTP_TEMPLATE = """\
// Migrated from Firebase HTTP function: {{ name }}
{{ imports }}
{{ cors }}
serve(async (req) => {
  if (req.method === 'OPTIONS') {
    return new Response('ok', { headers: corsHeaders })
  }

  try {
{{ client }}
    let result

{{ body }}

    return new Response(
      JSON.stringify({ success: true, data: result }),
      { headers: { ...corsHeaders, 'Content-Type': 'application/json' } }
    )
  } catch (error) {
    console.error('Function error:', error)
    return new Response(
      JSON.stringify({ error: error.message }),
      { status: 500, headers: { ...corsHeaders, 'Content-Type': 'application/json' } }
    )
  }
})

{{ notes }}"""

CALLABLE_TEMPLATE = """\
// Migrated from Firebase callable function: {{ name }}
{{ imports }}
{{ cors }}
serve(async (req) => {
  if (req.method === 'OPTIONS') {
    return new Response('ok', { headers: corsHeaders })
  }

  try {
    const authHeader = req.headers.get('Authorization')
    if (!authHeader) {
      return new Response(
        JSON.stringify({ error: 'Missing authorization header' }),
        { status: 401, headers: { ...corsHeaders, 'Content-Type': 'application/json' } }
      )
    }

    const token = authHeader.replace('Bearer ', '')
{{ client }}
    const { data: { user }, error: authError } = await supabaseClient.auth.getUser(token)
    if (authError || !user) {
      return new Response(
        JSON.stringify({ error: 'Unauthorized' }),
        { status: 401, headers: { ...corsHeaders, 'Content-Type': 'application/json' } }
      )
    }

    const data = await req.json()
    let result

{{ body }}

    return new Response(
      JSON.stringify(result),
      { headers: { ...corsHeaders, 'Content-Type': 'application/json' } }
    )
  } catch (error) {
    console.error('Function error:', error)
    return new Response(
      JSON.stringify({ error: error.message }),
      { status: 500, headers: { ...corsHeaders, 'Content-Type': 'application/json' } }
    )
  }
})

{{ notes }}"""

WEBHOOK_TEMPLATE = """\
// Migrated from Firebase {{ label }} trigger: {{ name }}
{% if origin %}
// Original trigger: {{ origin }}
{% endif %}
{{ imports }}
serve(async (req) => {
  const webhookSecret = Deno.env.get('SUPABASE_WEBHOOK_SECRET')
  const authHeader = req.headers.get('authorization')

  if (!authHeader || authHeader !== `Bearer ${webhookSecret}`) {
    return new Response('Unauthorized', { status: 401 })
  }

  try {
    const { type, table, record, old_record } = await req.json()
{{ client }}
{{ body }}

    return new Response('OK', { status: 200 })
  } catch (error) {
    console.error('Webhook error:', error)
    return new Response(
      JSON.stringify({ error: error.message }),
      { status: 500, headers: { 'Content-Type': 'application/json' } }
    )
  }
})

{{ notes }}"""

SCHEDULED_TEMPLATE = """\
// Migrated from Firebase scheduled function: {{ name }}
// Original schedule: {{ schedule or 'N/A' }}
{{ imports }}
serve(async (req) => {
  const expectedAuth = `Bearer ${Deno.env.get('CRON_SECRET')}`

  if (req.headers.get('authorization') !== expectedAuth) {
    return new Response('Unauthorized', { status: 401 })
  }

  try {
{{ client }}
{{ body }}

    return new Response('Scheduled task completed', { status: 200 })
  } catch (error) {
    console.error('Scheduled function error:', error)
    return new Response(
      JSON.stringify({ error: error.message }),
      { status: 500, headers: { 'Content-Type': 'application/json' } }
    )
  }
})

{{ notes }}"""


# ---------------------------------------------------------------------------
# SQL companions
# ---------------------------------------------------------------------------
TRIGGER_SQL_TEMPLATE = """\
-- Routes {{ operations }} on {{ table }} to the {{ name }} Edge Function.
-- Requires the pg_net extension and app.webhook_secret set to SUPABASE_WEBHOOK_SECRET.
CREATE EXTENSION IF NOT EXISTS pg_net;

CREATE OR REPLACE FUNCTION public.trigger_{{ name }}_webhook()
RETURNS TRIGGER AS $$
BEGIN
  PERFORM net.http_post(
    url := '{{ function_url }}',
    headers := jsonb_build_object(
      'Content-Type', 'application/json',
      'Authorization', 'Bearer ' || current_setting('app.webhook_secret')
    ),
    body := jsonb_build_object(
      'type', TG_OP,
      'table', TG_TABLE_NAME,
      'record', CASE WHEN TG_OP = 'DELETE' THEN NULL ELSE row_to_json(NEW) END,
      'old_record', CASE WHEN TG_OP = 'INSERT' THEN NULL ELSE row_to_json(OLD) END
    )
  );
  RETURN COALESCE(NEW, OLD);
END;
$$ LANGUAGE plpgsql SECURITY DEFINER;

DROP TRIGGER IF EXISTS on_{{ name }} ON {{ table }};
CREATE TRIGGER on_{{ name }}
  AFTER {{ operations }} ON {{ table }}
  FOR EACH ROW
  EXECUTE FUNCTION public.trigger_{{ name }}_webhook();
"""

CRON_NOTE_TEMPLATE = """\
Schedule with pg_cron (run in the SQL editor):
 *   CREATE EXTENSION IF NOT EXISTS pg_cron;
 *   SELECT cron.schedule(
 *     '{{ name }}',
 *     '{{ cron }}',
 *     $$ SELECT net.http_post(
 *       url := '{{ function_url }}',
 *       headers := '{"Content-Type": "application/json", "Authorization": "Bearer YOUR_CRON_SECRET"}'::jsonb
 *     ) $$
 *   );"""
