"""In-memory and Consul storage backends for scaling policies."""