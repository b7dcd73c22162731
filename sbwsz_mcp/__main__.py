from sbwsz_mcp.server import run

run()
